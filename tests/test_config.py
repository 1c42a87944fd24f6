"""配置加载的测试。"""

import os

import click
import pytest

from modcache.cli import load_config
from modcache.exceptions import ConfigError
from modcache.models import CacheConfig
from modcache.models.config import DEFAULT_BASE_URL, DEFAULT_INSTALL_DIR


class TestFromDict:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))

        config = CacheConfig.from_dict({})

        assert config.cache_dir == os.path.join(str(tmp_path), "modcache")
        assert config.install_dir == DEFAULT_INSTALL_DIR
        assert config.base_url == DEFAULT_BASE_URL
        assert config.timeout == 60.0
        assert not config.verify_checksum
        assert config.db_path == os.path.join(config.cache_dir, "mods.db")
        assert config.mod_dir == os.path.join(config.cache_dir, "mods")

    def test_section_and_overrides(self):
        config = CacheConfig.from_dict(
            {
                "modcache": {
                    "cache_dir": "/tmp/mc",
                    "install_dir": "/games/factorio",
                    "base_url": "https://mirror.example.com/",
                    "timeout": 5,
                    "install_optional": True,
                }
            }
        )

        assert config.cache_dir == "/tmp/mc"
        assert config.install_dir == "/games/factorio"
        assert config.base_url == "https://mirror.example.com"
        assert config.timeout == 5.0
        assert config.install_optional

    @pytest.mark.parametrize(
        "data",
        [
            ["not", "a", "mapping"],
            {"timeout": "soon"},
            {"timeout": 0},
            {"verify_checksum": "yes"},
        ],
    )
    def test_invalid(self, data):
        with pytest.raises(ConfigError):
            CacheConfig.from_dict(data)


class TestLoadConfig:
    def test_toml(self, tmp_path):
        path = tmp_path / "modcache.toml"
        path.write_text('[modcache]\ncache_dir = "/tmp/from-toml"\ntimeout = 10\n')

        config = CacheConfig.from_dict(load_config(str(path)))

        assert config.cache_dir == "/tmp/from-toml"
        assert config.timeout == 10.0

    def test_yaml(self, tmp_path):
        path = tmp_path / "modcache.yaml"
        path.write_text("cache_dir: /tmp/from-yaml\nshow_progress: true\n")

        config = CacheConfig.from_dict(load_config(str(path)))

        assert config.cache_dir == "/tmp/from-yaml"
        assert config.show_progress

    def test_json(self, tmp_path):
        path = tmp_path / "modcache.json"
        path.write_text('{"install_dir": "/srv/factorio"}')

        assert CacheConfig.from_dict(load_config(str(path))).install_dir == "/srv/factorio"

    def test_unknown_suffix(self, tmp_path):
        path = tmp_path / "modcache.ini"
        path.write_text("[modcache]")

        with pytest.raises(click.ClickException):
            load_config(str(path))
