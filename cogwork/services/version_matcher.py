"""
版本匹配服务

实现"取最高版本"策略所需的比较与映射更新。
"""

from typing import Dict, MutableMapping

from cogwork.models.package import Package, PackageVersion


class VersionMatcher:
    """版本匹配器"""

    def is_higher(self, candidate: PackageVersion, current: PackageVersion) -> bool:
        """candidate 的版本是否严格高于 current"""
        return candidate.version > current.version

    def add_or_update_to_higher(
        self,
        mapping: MutableMapping[Package, PackageVersion],
        package_version: PackageVersion,
    ) -> bool:
        """
        将版本放入映射；已存在时只在版本更高时替换

        Returns:
            是否插入或更新了映射
        """
        current = mapping.get(package_version.package)
        if current is None:
            mapping[package_version.package] = package_version
            return True

        if self.is_higher(package_version, current):
            mapping[package_version.package] = package_version
            return True

        return False

    def get_higher(
        self,
        mapping: Dict[Package, PackageVersion],
        package_version: PackageVersion,
    ) -> PackageVersion:
        """返回 package_version 与映射中同包版本里较高的一个"""
        current = mapping.get(package_version.package)
        if current is None or self.is_higher(package_version, current):
            return package_version
        return current
