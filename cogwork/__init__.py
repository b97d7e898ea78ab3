"""
Cogwork - 游戏模组包管理工具

解析用户显式添加的模组及其依赖闭包，并维护从远程包索引获取的包数据。
"""

__version__ = "0.1.0"

from cogwork.modlist import ModList, ModListConfig, ProfileRegistry
from cogwork.models import Author, Game, Package, PackageVersion
from cogwork.services import PackageSource, PackageSourceIndex

__all__ = [
    "__version__",
    "Author",
    "Game",
    "ModList",
    "ModListConfig",
    "Package",
    "PackageSource",
    "PackageSourceIndex",
    "PackageVersion",
    "ProfileRegistry",
]
