"""
Cogwork 数据模型包

包含包身份模型、游戏定义和配置模型。
"""

from cogwork.models.config import CogworkSettings
from cogwork.models.game import (
    Game,
    Platforms,
    SteamId,
    SUPPORTED_GAMES,
    find_games,
    get_game,
)
from cogwork.models.package import (
    THUNDERSTORE_TAG,
    Author,
    DependencyReference,
    Package,
    PackageVersion,
    get_package_version,
)

__all__ = [
    # 配置模型
    "CogworkSettings",
    # 游戏
    "Game",
    "Platforms",
    "SteamId",
    "SUPPORTED_GAMES",
    "find_games",
    "get_game",
    # 包模型
    "THUNDERSTORE_TAG",
    "Author",
    "DependencyReference",
    "Package",
    "PackageVersion",
    "get_package_version",
]
