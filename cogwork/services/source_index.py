"""
包来源索引

一个游戏的有序来源列表，第 0 个来源是依赖引用未指定来源时的默认解析来源。
"""

import asyncio
from typing import Iterable, List, Optional

from loguru import logger

from cogwork.exceptions import NoPackageSourceError, UnsupportedSourceError
from cogwork.models.config import CogworkSettings
from cogwork.models.game import Game
from cogwork.models.package import Package
from cogwork.paths import CogworkPaths
from cogwork.services.package_source import PackageSource, ThunderstoreService


class PackageSourceIndex:
    """包来源索引（只追加）"""

    def __init__(self, game: Game, sources: Optional[Iterable[PackageSource]] = None):
        self.game = game
        self._sources: List[PackageSource] = []
        for source in sources or []:
            self.add(source)

    @property
    def sources(self) -> List[PackageSource]:
        return list(self._sources)

    @property
    def default(self) -> PackageSource:
        """默认来源"""
        if not self._sources:
            raise NoPackageSourceError(f"游戏 '{self.game.name}' 没有任何包来源")
        return self._sources[0]

    def add(self, source: PackageSource) -> None:
        if source.game.slug != self.game.slug:
            raise ValueError(
                f"来源 '{source}' 属于游戏 '{source.game.slug}'，不能加入 '{self.game.slug}'"
            )
        source.index = self
        self._sources.append(source)

    def sources_with_tag(self, tag: str) -> List[PackageSource]:
        """带指定来源标签的全部来源，至少一个，否则抛出 UnsupportedSourceError"""
        tagged = [source for source in self._sources if source.service.tag == tag]
        if not tagged:
            raise UnsupportedSourceError(
                f"游戏 '{self.game.name}' 没有来源标签为 '{tag}' 的来源",
                context={"source": tag},
            )
        return tagged

    def get_source(self, tag: Optional[str]) -> PackageSource:
        """按来源标签查找来源，None 表示默认来源"""
        if tag is None:
            return self.default
        return self.sources_with_tag(tag)[0]

    def find_package(
        self, full_name: str, source_tag: Optional[str] = None
    ) -> Optional[Package]:
        """
        在来源中查找包

        未指定标签时只查默认来源。带标签的引用由非默认来源产生，
        因此先按顺序查找带该标签的非默认来源，最后才是默认来源。
        """
        if source_tag is None:
            return self.default.find_package(full_name)

        tagged = self.sources_with_tag(source_tag)
        for source in sorted(tagged, key=lambda s: s is self.default):
            package = source.find_package(full_name)
            if package is not None:
                return package
        return None

    @property
    def all_packages(self) -> List[Package]:
        """已导入的全部包（不触发获取）"""
        return [package for source in self._sources for package in source.packages]

    async def get_all_packages(self, manual: bool = False) -> List[Package]:
        """
        并发获取所有来源的包

        单个来源失败不影响其他来源的结果。
        """
        results = await asyncio.gather(
            *(source.get_packages(manual) for source in self._sources),
            return_exceptions=True,
        )

        packages: List[Package] = []
        for source, result in zip(self._sources, results):
            if isinstance(result, BaseException):
                logger.error(f"获取来源 '{source}' 的包失败: {result}")
                continue
            packages.extend(result)
        return packages

    def invalidate_links(self) -> None:
        for source in self._sources:
            source.invalidate_links()

    def __iter__(self):
        return iter(self._sources)


def default_source_index(
    game: Game,
    paths: CogworkPaths,
    settings: Optional[CogworkSettings] = None,
) -> PackageSourceIndex:
    """为游戏创建默认的来源索引（Thunderstore）"""
    settings = settings or CogworkSettings()
    service = ThunderstoreService(game, timeout=settings.request_timeout)
    return PackageSourceIndex(game, [PackageSource(service, paths, settings)])
