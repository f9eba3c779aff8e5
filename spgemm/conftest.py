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

import pytest

from spgemm import config


@pytest.fixture(autouse=True)
def isolate_config(tmp_path, monkeypatch):
    """Redirect config to a temp directory and reset runtime overrides for each test."""
    config_path = str(tmp_path / 'spgemm' / 'defaults.json')
    monkeypatch.setattr('spgemm.config.get_config_path', lambda: config_path)
    monkeypatch.delenv(config.SHADER_PATH_ENV, raising=False)
    config.invalidate_cache()
    config.set_num_workers(None)
    config.set_shader_path(None)
    yield config_path
    config.invalidate_cache()
    config.set_num_workers(None)
    config.set_shader_path(None)
