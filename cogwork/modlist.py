"""
模组列表（配置档案）

ModList 保存用户显式添加的包以及计算出的依赖闭包；ModListConfig 是其可序列化的投影，
可以在包索引可用之前单独从磁盘读取，之后再通过 ``ModList.from_config`` 绑定到索引。
"""

import os
import re
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from loguru import logger

from cogwork.exceptions import ProfileNotFoundError, ResolutionError
from cogwork.models.game import Game
from cogwork.models.package import Package, PackageVersion, get_package_version
from cogwork.paths import CogworkPaths
from cogwork.services.dependency_resolver import DependencyResolver
from cogwork.services.source_index import PackageSourceIndex
from cogwork.storage import load_json, save_json

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def make_profile_id(display_name: str, profiles_dir: str) -> str:
    """
    由显示名称生成档案 id

    文件名非法字符替换为 ``_``；目录已存在时追加数字后缀 2、3……
    """
    base = _INVALID_FILENAME_CHARS.sub("_", display_name.strip())
    if base in ("", ".", ".."):
        base = base.replace(".", "_") or "_"

    candidate = base
    num = 1
    while os.path.exists(os.path.join(profiles_dir, candidate)):
        num += 1
        candidate = f"{base}{num}"
    return candidate


def _source_url(entry) -> str:
    if isinstance(entry, dict):
        entry = entry["Url"]
    if not isinstance(entry, str):
        raise TypeError(f"无效的来源地址: {entry!r}")
    return entry


def _string_list(data: dict, key: str) -> List[str]:
    values = data.get(key) or []
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise TypeError(f"'{key}' 必须是字符串数组")
    return list(values)


@dataclass
class ModListConfig:
    """
    模组列表的可序列化投影（未绑定状态）

    ``added`` / ``dependencies`` 为 ``Author-Name-Version[-Source]`` 字符串。
    """

    display_name: Optional[str] = None
    sources: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "DisplayName": self.display_name,
            "Sources": list(self.sources),
            "Added": list(self.added),
            "Dependencies": list(self.dependencies),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ModListConfig":
        display_name = data.get("DisplayName")
        if display_name is not None and not isinstance(display_name, str):
            raise TypeError("'DisplayName' 必须是字符串")
        return cls(
            display_name=display_name,
            sources=[_source_url(entry) for entry in data.get("Sources") or []],
            added=_string_list(data, "Added"),
            dependencies=_string_list(data, "Dependencies"),
        )

    @classmethod
    def load(cls, path: str) -> "ModListConfig":
        """读取配置；文件不存在或损坏时返回空配置"""
        return load_json(path, cls.from_dict, cls)

    def save(self, path: str) -> None:
        save_json(path, self.to_dict())

    def bind(
        self, index: PackageSourceIndex
    ) -> Tuple[Dict[Package, PackageVersion], Dict[Package, PackageVersion]]:
        """
        把字符串引用解析为索引中的实际对象

        无法解析的引用记录日志后跳过。
        """
        known_urls = {source.service.url for source in index}
        for url in self.sources:
            if url not in known_urls:
                logger.warning(f"档案引用的来源 '{url}' 不在当前索引中")

        return self._bind_refs(index, self.added), self._bind_refs(
            index, self.dependencies
        )

    @staticmethod
    def _bind_refs(
        index: PackageSourceIndex, references: List[str]
    ) -> Dict[Package, PackageVersion]:
        bound: Dict[Package, PackageVersion] = {}
        for reference in references:
            try:
                package_version = get_package_version(index, reference)
            except ResolutionError as e:
                logger.error(f"无法解析档案中的包 '{reference}'，已忽略: {e}")
                continue
            bound[package_version.package] = package_version
        return bound


class ModList:
    """
    一个游戏的一个模组配置档案

    ``added`` 与 ``dependencies`` 都以 Package 实例为键，二者的键始终不相交。
    同一实例上的修改需由调用方串行执行。
    """

    def __init__(
        self,
        game: Game,
        display_name: str,
        index: PackageSourceIndex,
        paths: CogworkPaths,
        profile_id: Optional[str] = None,
        resolver: Optional[DependencyResolver] = None,
    ):
        self.game = game
        self.display_name = display_name
        self.index = index
        self.paths = paths
        self.id = profile_id or make_profile_id(
            display_name, paths.profiles_dir(game.slug)
        )
        self.resolver = resolver or DependencyResolver()
        self.added: Dict[Package, PackageVersion] = {}
        self.dependencies: Dict[Package, PackageVersion] = {}

    @classmethod
    def from_config(
        cls,
        game: Game,
        profile_id: str,
        config: ModListConfig,
        index: PackageSourceIndex,
        paths: CogworkPaths,
    ) -> "ModList":
        """绑定步骤：根据已读取的配置和可用的索引创建模组列表"""
        mod_list = cls(
            game, config.display_name or profile_id, index, paths, profile_id
        )
        added, dependencies = config.bind(index)
        mod_list.added = added
        mod_list.dependencies = {
            package: version
            for package, version in dependencies.items()
            if package not in added
        }
        return mod_list

    @property
    def file_location(self) -> str:
        return self.paths.profile_file(self.game.slug, self.id)

    @property
    def config(self) -> ModListConfig:
        """当前状态的可序列化快照"""
        sources = []
        for source in self.index:
            if source.service.url not in sources:
                sources.append(source.service.url)
        return ModListConfig(
            display_name=self.display_name,
            sources=sources,
            added=[v.reference() for v in self.added.values()],
            dependencies=[v.reference() for v in self.dependencies.values()],
        )

    def add(self, item: Union[Package, PackageVersion]) -> None:
        """
        添加包或包版本

        只会升级不会降级；传入 Package 时选择最新版本。之后重建依赖并保存。
        """
        package_version = item.latest if isinstance(item, Package) else item

        added = dict(self.added)
        if self.resolver.matcher.add_or_update_to_higher(added, package_version):
            logger.info(f"添加 '{package_version}'")
        else:
            logger.info(
                f"'{package_version.package}' 已添加版本 "
                f"{added[package_version.package].version}，保持不变"
            )
        self._commit(added)

    def remove(self, item: Union[Package, PackageVersion]) -> None:
        """移除包，之后重建依赖并保存"""
        package = item.package if isinstance(item, PackageVersion) else item

        added = dict(self.added)
        if added.pop(package, None) is None:
            logger.warning(f"'{package}' 不在已添加列表中")
        else:
            logger.info(f"移除 '{package}'")
        self._commit(added)

    def rebuild_dependencies(self) -> None:
        """根据 added 重新计算依赖"""
        self.dependencies = self.resolver.resolve(self.added)

    def _commit(self, added: Dict[Package, PackageVersion]) -> None:
        # 依赖计算成功后才修改状态并写盘
        dependencies = self.resolver.resolve(added)
        self.added = added
        self.dependencies = dependencies
        self.save()

    def save(self) -> None:
        self.config.save(self.file_location)
        logger.debug(f"档案 '{self.id}' 已保存到 {self.file_location}")

    def __str__(self) -> str:
        lines = ["Added:"]
        lines.extend(f"  {v}" for v in self.added.values())
        lines.append("Dependencies:")
        lines.extend(f"  {v}" for v in self.dependencies.values())
        return "\n".join(lines) + "\n"


class ProfileRegistry:
    """
    档案 id -> ModList 的进程内注册表

    锁只保护字典的查找与插入，不覆盖文件读写。
    """

    def __init__(self, paths: CogworkPaths):
        self.paths = paths
        self._lock = threading.Lock()
        self._profiles: Dict[Tuple[str, str], ModList] = {}

    def get(
        self, game: Game, profile_id: str, index: PackageSourceIndex
    ) -> Optional[ModList]:
        """获取档案；已加载时返回同一实例，磁盘上不存在时返回 None"""
        key = (game.slug, profile_id)
        with self._lock:
            mod_list = self._profiles.get(key)
        if mod_list is not None:
            return mod_list

        path = self.paths.profile_file(game.slug, profile_id)
        if not os.path.isfile(path):
            return None

        config = ModListConfig.load(path)
        mod_list = ModList.from_config(game, profile_id, config, index, self.paths)

        with self._lock:
            return self._profiles.setdefault(key, mod_list)

    def require(
        self, game: Game, profile_id: str, index: PackageSourceIndex
    ) -> ModList:
        mod_list = self.get(game, profile_id, index)
        if mod_list is None:
            raise ProfileNotFoundError(
                f"档案 '{profile_id}' 不存在",
                context={"game": game.slug, "profile": profile_id},
            )
        return mod_list

    def create(
        self, game: Game, display_name: str, index: PackageSourceIndex
    ) -> ModList:
        """创建新档案并立即保存"""
        mod_list = ModList(game, display_name, index, self.paths)
        mod_list.save()
        logger.info(f"已创建档案 '{display_name}' (id: {mod_list.id})")

        with self._lock:
            return self._profiles.setdefault((game.slug, mod_list.id), mod_list)

    def list_ids(self, game: Game) -> List[str]:
        """磁盘上该游戏的所有档案 id"""
        profiles_dir = self.paths.profiles_dir(game.slug)
        if not os.path.isdir(profiles_dir):
            return []
        return sorted(
            entry
            for entry in os.listdir(profiles_dir)
            if os.path.isfile(self.paths.profile_file(game.slug, entry))
        )
