"""
Test configuration loading and gateway selection.
"""

import json
from pathlib import Path

import pytest
from platformdirs import user_config_dir

import notebook_vcs.config
from notebook_vcs import (
    ConfigError,
    FileSystemGateway,
    MemoryGateway,
    SqliteGateway,
    VcsConfig,
    load_config,
)
from notebook_vcs.cache import DEFAULT_CACHE_SIZE
from notebook_vcs.config import default_config_path, default_store_path, open_gateway


def write_config(path, data):
    path.write_text(json.dumps(data), encoding='utf-8')
    return path


class TestLoadConfig:

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / 'missing.json')

        assert config == VcsConfig()
        assert config.backend == 'filesystem'
        assert config.verify_reads is True
        assert config.default_branch == 'master'
        assert config.store_path == default_store_path()
        assert config.cache_size == DEFAULT_CACHE_SIZE

    def test_values_from_file(self, tmp_path):
        path = write_config(tmp_path / 'config.json', {
            'store_path': str(tmp_path / 'store'),
            'backend': 'sqlite',
            'default_branch': 'main',
        })

        config = load_config(path)

        assert config.store_path == tmp_path / 'store'
        assert isinstance(config.store_path, Path)
        assert config.backend == 'sqlite'
        assert config.default_branch == 'main'
        assert config.root_category_name == 'root'

    @pytest.mark.parametrize('data', [
        {'colour': 'blue'},
        {'backend': 'tape'},
        {'verify_reads': 'yes'},
        {'cache_size': -1},
        {'cache_size': 'big'},
        {'cache_size': True},
        ['not', 'an', 'object'],
    ])
    def test_invalid_values_rejected(self, tmp_path, data):
        path = write_config(tmp_path / 'config.json', data)

        with pytest.raises(ConfigError) as exc_info:
            load_config(path)

        assert exc_info.value.path == str(path)

    def test_default_path_is_user_config_dir(self):
        expected = Path(user_config_dir('notebook-vcs', appauthor=False)) / 'config.json'

        assert default_config_path() == expected

    def test_default_path_is_read(self, tmp_path, monkeypatch):
        monkeypatch.setattr(notebook_vcs.config, 'user_config_dir', lambda *args, **kwargs: str(tmp_path))
        write_config(tmp_path / 'config.json', {'backend': 'memory', 'cache_size': 16})

        config = load_config()

        assert config.backend == 'memory'
        assert config.cache_size == 16

    def test_malformed_json_rejected(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('{"backend": ', encoding='utf-8')

        with pytest.raises(ConfigError):
            load_config(path)

    def test_with_overrides(self, tmp_path):
        config = VcsConfig(store_path=tmp_path).with_overrides(backend='memory')

        assert config.backend == 'memory'
        assert config.store_path == tmp_path

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            VcsConfig(backend='tape')


class TestOpenGateway:

    def test_memory(self, tmp_path):
        assert isinstance(open_gateway(VcsConfig(store_path=tmp_path, backend='memory')), MemoryGateway)
        assert list(tmp_path.iterdir()) == []

    def test_filesystem(self, tmp_path):
        gateway = open_gateway(VcsConfig(store_path=tmp_path / 'store'))

        assert isinstance(gateway, FileSystemGateway)
        assert (tmp_path / 'store' / 'commits').is_dir()

    def test_sqlite(self, tmp_path):
        gateway = open_gateway(VcsConfig(store_path=tmp_path, backend='sqlite'))
        try:
            assert isinstance(gateway, SqliteGateway)
            assert (tmp_path / 'notebooks.sqlite3').exists()
        finally:
            gateway.close()
