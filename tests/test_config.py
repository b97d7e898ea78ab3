"""配置、游戏目录与路径测试"""

import json
import os

import pytest

from cogwork.exceptions import ConfigError, ConfigParseError
from cogwork.models.config import CogworkSettings
from cogwork.models.game import PEAK, SILKSONG, find_games, get_game
from cogwork.paths import CogworkPaths
from cogwork.utils import load_config_file


class TestLoadConfigFile:
    def test_missing_file(self, tmp_path):
        assert load_config_file(str(tmp_path / "none.toml")) is None

    def test_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[cogwork]\nrequest_timeout = 5\n", encoding="utf-8")
        assert load_config_file(str(path)) == {"cogwork": {"request_timeout": 5}}

    def test_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"request_timeout": 5}), encoding="utf-8")
        assert load_config_file(str(path)) == {"request_timeout": 5}

    def test_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("request_timeout: 5\ncache_dir: /tmp/c\n", encoding="utf-8")
        assert load_config_file(str(path)) == {"request_timeout": 5, "cache_dir": "/tmp/c"}

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("", encoding="utf-8")
        assert load_config_file(str(path)) == {}

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "config.ini"
        path.write_text("[x]", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config_file(str(path))

    def test_parse_error(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("this is = = not toml", encoding="utf-8")
        with pytest.raises(ConfigParseError) as excinfo:
            load_config_file(str(path))
        assert excinfo.value.code == "E101"
        assert excinfo.value.context["path"] == str(path)

    def test_top_level_must_be_table(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigParseError):
            load_config_file(str(path))


class TestCogworkSettings:
    def test_defaults(self):
        settings = CogworkSettings.from_dict(None)
        assert settings.automatic_ttl_seconds == 20 * 60
        assert settings.manual_ttl_seconds == 10
        assert settings.request_timeout == 60

    def test_nested_table(self):
        settings = CogworkSettings.from_dict(
            {"cogwork": {"automatic_refresh_minutes": 1, "cache_dir": "/c"}}
        )
        assert settings.automatic_ttl_seconds == 60
        assert settings.cache_dir == "/c"

    def test_unknown_key(self):
        with pytest.raises(ConfigError) as excinfo:
            CogworkSettings.from_dict({"refresh": 1})
        assert "refresh" in str(excinfo.value)

    @pytest.mark.parametrize("value", [-1, "soon"])
    def test_invalid_number(self, value):
        with pytest.raises(ConfigError):
            CogworkSettings.from_dict({"manual_refresh_seconds": value})


class TestGames:
    def test_get_game(self):
        assert get_game("peak") is PEAK
        assert get_game("unknown") is None
        assert get_game(None) is None

    def test_exact_match_wins(self):
        assert find_games("PEAK") == [PEAK]
        assert find_games("hollow-knight-silksong") == [SILKSONG]

    def test_substring_match(self):
        assert find_games("silk") == [SILKSONG]
        assert find_games("silk", exact_only=True) == []
        assert find_games("   ") == []


class TestPaths:
    def test_layout(self, tmp_path):
        paths = CogworkPaths(str(tmp_path / "c"), str(tmp_path / "d"))
        assert paths.game_cache_dir("peak") == os.path.join(str(tmp_path / "c"), "peak")
        assert paths.profile_file("peak", "main") == os.path.join(
            str(tmp_path / "d"), "games", "peak", "profiles", "main", "profile.json"
        )
        assert paths.state_file == os.path.join(str(tmp_path / "d"), "state.json")

    def test_xdg_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xc"))
        monkeypatch.setenv("XDG_DATA_HOME", "relative/is/ignored")
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        paths = CogworkPaths()
        assert paths.cache_dir == os.path.join(str(tmp_path / "xc"), "cogwork")
        assert paths.data_dir == os.path.join(
            str(tmp_path / "home"), ".local", "share", "cogwork"
        )
