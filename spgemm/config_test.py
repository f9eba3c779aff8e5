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

import json
import os

import pytest

from spgemm.config import (
    DEFAULT_SHADER_PATH,
    clear_user_defaults,
    get_config_path,
    get_num_workers,
    get_shader_path,
    get_user_default,
    invalidate_cache,
    load_user_defaults,
    save_user_defaults,
    set_num_workers,
    set_shader_path,
    set_user_default,
)


def _store(path, content):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w') as f:
        f.write(content if isinstance(content, str) else json.dumps(content))


def test_config_path_is_defaults_json():
    assert get_config_path().endswith(os.path.join('spgemm', 'defaults.json'))


class TestPersistedDefaults:
    def test_missing_file_is_empty(self):
        assert load_user_defaults() == {}

    def test_save_merges_and_survives_reload(self, isolate_config):
        save_user_defaults({'engine': 'sparse'})
        save_user_defaults({'num_workers': 4})
        invalidate_cache()
        assert load_user_defaults() == {'engine': 'sparse', 'num_workers': 4}
        with open(isolate_config) as f:
            assert json.load(f) == {'schema_version': 1, 'defaults': {'engine': 'sparse', 'num_workers': 4}}
        assert not os.path.exists(isolate_config + '.tmp')

    def test_reads_existing_file(self, isolate_config):
        _store(isolate_config, {'schema_version': 1, 'defaults': {'engine': 'sparse_par'}})
        assert get_user_default('engine') == 'sparse_par'

    @pytest.mark.parametrize(
        'content, message',
        [
            ('not valid json{{{', 'Corrupted'),
            ({'schema_version': 999, 'defaults': {'num_workers': 3}}, 'schema version'),
            ([1, 2, 3], 'schema version'),
        ]
    )
    def test_unusable_file_warns_and_is_ignored(self, isolate_config, content, message):
        _store(isolate_config, content)
        with pytest.warns(UserWarning, match=message):
            assert load_user_defaults() == {}

    def test_get_and_set_single(self):
        assert get_user_default('engine', 'sparse') == 'sparse'
        set_user_default('engine', 'gpu')
        assert get_user_default('engine') == 'gpu'

    def test_clear(self, isolate_config):
        set_user_default('engine', 'gpu')
        clear_user_defaults()
        assert not os.path.exists(isolate_config)
        assert load_user_defaults() == {}


class TestNumWorkers:
    def test_default_is_cpu_count(self):
        assert get_num_workers() == (os.cpu_count() or 1)

    def test_override_beats_persisted(self):
        set_user_default('num_workers', 5)
        assert get_num_workers() == 5
        set_num_workers(2)
        assert get_num_workers() == 2
        set_num_workers(None)
        assert get_num_workers() == 5

    @pytest.mark.parametrize('value', [0, -1, 1.5, True, '4'])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            set_num_workers(value)


class TestShaderPath:
    def test_default_is_packaged_kernel(self):
        assert get_shader_path() == DEFAULT_SHADER_PATH
        assert os.path.isfile(DEFAULT_SHADER_PATH)

    def test_resolution_order(self, monkeypatch, tmp_path):
        set_user_default('shader_path', str(tmp_path / 'persisted.wgsl'))
        assert get_shader_path() == str(tmp_path / 'persisted.wgsl')
        monkeypatch.setenv('SPGEMM_SHADER_PATH', str(tmp_path / 'env.wgsl'))
        assert get_shader_path() == str(tmp_path / 'env.wgsl')
        set_shader_path(tmp_path / 'explicit.wgsl')
        assert get_shader_path() == str(tmp_path / 'explicit.wgsl')
