"""
依赖处理服务

根据显式添加的包计算依赖闭包：每个可达的包只保留一个条目，取所有路径中要求的最高版本。
"""

from typing import Dict, Mapping, Optional

from loguru import logger

from cogwork.models.package import Package, PackageVersion
from cogwork.services.version_matcher import VersionMatcher


class DependencyResolver:
    """
    依赖解析器

    单次深度优先遍历可能先经由"较弱"的路径记录某个共享依赖的低版本，
    因此分三步进行：
      1. 求出每个包被要求的最高版本
      2. 以该映射为准重新遍历，构建最终依赖集合
      3. 去掉显式添加的包
    """

    def __init__(self, matcher: Optional[VersionMatcher] = None):
        self.matcher = matcher or VersionMatcher()

    def resolve(
        self, added: Mapping[Package, PackageVersion]
    ) -> Dict[Package, PackageVersion]:
        """
        解析依赖

        Args:
            added: 显式添加的包 -> 版本

        Returns:
            依赖映射，与 added 的键不相交
        """
        highest: Dict[Package, PackageVersion] = {}
        for package_version in added.values():
            self.matcher.add_or_update_to_higher(highest, package_version)
            self._collect_highest(package_version, highest)

        dependencies: Dict[Package, PackageVersion] = {}
        for package_version in added.values():
            root = self.matcher.get_higher(highest, package_version)
            self._collect_dependencies(root, highest, dependencies)

        for package in added:
            dependencies.pop(package, None)

        logger.debug(f"依赖重建完成: {len(added)} 个已添加, {len(dependencies)} 个依赖")
        return dependencies

    def _collect_highest(
        self,
        package_version: PackageVersion,
        highest: Dict[Package, PackageVersion],
    ):
        """递归记录最高版本；映射未变化的包不再展开"""
        for dependency in package_version.marked_dependencies:
            if self.matcher.add_or_update_to_higher(highest, dependency):
                self._collect_highest(dependency, highest)

    def _collect_dependencies(
        self,
        package_version: PackageVersion,
        highest: Dict[Package, PackageVersion],
        destination: Dict[Package, PackageVersion],
    ):
        """递归构建依赖集合，已在目标映射中的包视为已访问"""
        for dependency in package_version.marked_dependencies:
            chosen = self.matcher.get_higher(highest, dependency)
            if chosen.package in destination:
                continue
            destination[chosen.package] = chosen
            self._collect_dependencies(chosen, highest, destination)
