"""
目录布局

按 XDG 约定确定缓存与数据目录，所有路径都从这里派生。
"""

import os
from typing import Optional

APP_ID = "cogwork"


def _xdg_dir(env_name: str, fallback: str) -> str:
    value = os.environ.get(env_name)
    if value and os.path.isabs(value):
        return value
    return os.path.join(os.path.expanduser("~"), fallback)


class CogworkPaths:
    """缓存 / 数据目录"""

    def __init__(
        self,
        cache_dir: Optional[str] = None,
        data_dir: Optional[str] = None,
    ):
        self.cache_dir = cache_dir or os.path.join(
            _xdg_dir("XDG_CACHE_HOME", ".cache"), APP_ID
        )
        self.data_dir = data_dir or os.path.join(
            _xdg_dir("XDG_DATA_HOME", os.path.join(".local", "share")), APP_ID
        )

    @staticmethod
    def default_config_file() -> str:
        return os.path.join(
            _xdg_dir("XDG_CONFIG_HOME", ".config"), APP_ID, "config.toml"
        )

    @property
    def log_dir(self) -> str:
        return os.path.join(self.cache_dir, "logs")

    @property
    def state_file(self) -> str:
        return os.path.join(self.data_dir, "state.json")

    def game_cache_dir(self, slug: str) -> str:
        """包索引缓存目录 {cache}/{slug}"""
        return os.path.join(self.cache_dir, slug)

    def profiles_dir(self, slug: str) -> str:
        return os.path.join(self.data_dir, "games", slug, "profiles")

    def profile_dir(self, slug: str, profile_id: str) -> str:
        return os.path.join(self.profiles_dir(slug), profile_id)

    def profile_file(self, slug: str, profile_id: str) -> str:
        return os.path.join(self.profile_dir(slug, profile_id), "profile.json")
