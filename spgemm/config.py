# Copyright 2025 BrainX Ecosystem Limited. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""User-level configuration for spgemm.

Persisted defaults (``engine``, ``num_workers``, ``shader_path``) live in a
versioned JSON file; runtime overrides set through this module take
precedence over them.

Config locations:
    - Linux:   ~/.config/spgemm/defaults.json
    - macOS:   ~/Library/Application Support/spgemm/defaults.json
    - Windows: %APPDATA%/spgemm/defaults.json
"""

import json
import os
import platform
import warnings
from typing import Any, Dict, Optional

__all__ = [
    'load_user_defaults',
    'save_user_defaults',
    'get_user_default',
    'set_user_default',
    'clear_user_defaults',
    'get_config_path',
    'invalidate_cache',
    'set_num_workers',
    'get_num_workers',
    'set_shader_path',
    'get_shader_path',
    'DEFAULT_SHADER_PATH',
    'SHADER_PATH_ENV',
]

_SCHEMA_VERSION = 1
_cache: Optional[Dict[str, Any]] = None

SHADER_PATH_ENV = 'SPGEMM_SHADER_PATH'
DEFAULT_SHADER_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), '_gpu', 'shaders', 'sparse_mul.wgsl')


def get_config_path() -> str:
    """Absolute path of ``defaults.json`` under the platform's config directory."""
    system = platform.system()
    if system == 'Windows':
        base = os.environ.get('APPDATA', os.path.expanduser('~'))
    elif system == 'Darwin':
        base = os.path.join(os.path.expanduser('~'), 'Library', 'Application Support')
    else:
        base = os.environ.get('XDG_CONFIG_HOME', os.path.join(os.path.expanduser('~'), '.config'))
    return os.path.join(base, 'spgemm', 'defaults.json')


def _read_config_file(path: str) -> Dict[str, Any]:
    """
    Parse the config file.

    A missing file yields an empty config.  An unreadable file, or one
    written with another schema version, also yields an empty config after
    a ``UserWarning``.
    """
    empty = {'schema_version': _SCHEMA_VERSION, 'defaults': {}}
    if not os.path.isfile(path):
        return empty
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        warnings.warn(f"spgemm: Corrupted config file at {path}: {e}. Using built-in defaults.", stacklevel=3)
        return empty
    version = data.get('schema_version') if isinstance(data, dict) else None
    if version != _SCHEMA_VERSION:
        warnings.warn(
            f"spgemm: Config file schema version {version} is not supported "
            f"(expected {_SCHEMA_VERSION}). Ignoring user defaults.",
            stacklevel=3,
        )
        return empty
    data.setdefault('defaults', {})
    return data


def _write_config_file(path: str, data: Dict[str, Any]):
    # Written beside the target and renamed, so readers never see half a file.
    staging = path + '.tmp'
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(staging, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, sort_keys=True)
        os.replace(staging, path)
    except OSError as e:
        warnings.warn(f"spgemm: Cannot write config file {path}: {e}. Default persistence skipped.", stacklevel=3)


def invalidate_cache():
    """Forget the cached config so the next read goes to disk."""
    global _cache
    _cache = None


def load_user_defaults() -> Dict[str, Any]:
    """Return the persisted defaults, e.g. ``{'engine': 'sparse_par'}``.

    The file is read once and cached until :func:`invalidate_cache`.
    """
    global _cache
    if _cache is None:
        _cache = _read_config_file(get_config_path())
    return _cache['defaults']


def save_user_defaults(defaults: Dict[str, Any]):
    """Merge ``defaults`` into the persisted ones and write the file.

    Keys not mentioned keep their stored values.
    """
    global _cache
    path = get_config_path()
    data = _read_config_file(path)
    data['defaults'].update(defaults)
    _write_config_file(path, data)
    _cache = data


def get_user_default(key: str, default: Any = None) -> Any:
    """Return one persisted default, or ``default`` when it is not set."""
    return load_user_defaults().get(key, default)


def set_user_default(key: str, value: Any):
    """Persist one default."""
    save_user_defaults({key: value})


def clear_user_defaults():
    """Delete the config file and drop the cache."""
    global _cache
    path = get_config_path()
    try:
        if os.path.isfile(path):
            os.unlink(path)
    except OSError as e:
        warnings.warn(f"spgemm: Cannot delete config file {path}: {e}.", stacklevel=3)
    _cache = None


_num_workers: Optional[int] = None
_shader_path: Optional[str] = None


def set_num_workers(num_workers: Optional[int] = None):
    """Set the size of the worker pool used by the parallel CPU products.

    Parameters
    ----------
    num_workers : int or None, optional
        Number of workers.  ``None`` restores the default resolution
        (persisted ``num_workers`` user default, then ``os.cpu_count()``).

    Raises
    ------
    ValueError
        If ``num_workers`` is not a positive integer.

    Examples
    --------
    .. code-block:: python

        >>> import spgemm
        >>> spgemm.set_num_workers(4)
        >>> spgemm.get_num_workers()
        4
    """
    global _num_workers
    if num_workers is not None:
        if isinstance(num_workers, bool) or not isinstance(num_workers, int) or num_workers <= 0:
            raise ValueError(f'The number of workers must be a positive integer, got {num_workers!r}.')
    _num_workers = num_workers


def get_num_workers() -> int:
    """Return the worker pool size for the parallel CPU products."""
    if _num_workers is not None:
        return _num_workers
    persisted = get_user_default('num_workers')
    if isinstance(persisted, int) and not isinstance(persisted, bool) and persisted > 0:
        return persisted
    return os.cpu_count() or 1


def set_shader_path(path: Optional[str] = None):
    """Override the WGSL kernel source used by the GPU pipeline.

    Parameters
    ----------
    path : str or None, optional
        Path to a ``.wgsl`` file.  ``None`` restores the default resolution.
    """
    global _shader_path
    _shader_path = None if path is None else os.fspath(path)


def get_shader_path() -> str:
    """Return the WGSL kernel source path.

    Resolution order: :func:`set_shader_path`, the ``SPGEMM_SHADER_PATH``
    environment variable, the persisted ``shader_path`` user default, and
    finally the kernel shipped with the package.
    """
    if _shader_path is not None:
        return _shader_path
    env = os.environ.get(SHADER_PATH_ENV)
    if env:
        return env
    persisted = get_user_default('shader_path')
    if persisted:
        return str(persisted)
    return DEFAULT_SHADER_PATH
