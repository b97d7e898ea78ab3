"""
模组解析服务

处理用户直接输入的包引用或名称，解析失败时直接抛出异常。
"""

from typing import List

from cogwork.exceptions import InvalidReferenceError, PackageNotFoundError
from cogwork.models.package import (
    Package,
    PackageVersion,
    get_package_version,
)
from cogwork.services.source_index import PackageSourceIndex


class ModResolver:
    """模组解析器"""

    def __init__(self, index: PackageSourceIndex):
        self.index = index

    def resolve(self, query: str) -> PackageVersion:
        """
        解析用户输入

        Args:
            query: ``Author-Name[-Version[-Source]]``，或仅包名

        Returns:
            对应的包版本；未指定版本时为最新版本

        Raises:
            ResolutionError: 无法唯一确定包或版本
        """
        query = query.strip()
        if "-" not in query:
            return self._resolve_by_name(query).latest
        return get_package_version(self.index, query)

    def resolve_package(self, query: str) -> Package:
        """解析为包（忽略版本部分）"""
        return self.resolve(query).package

    def _resolve_by_name(self, name: str) -> Package:
        if not name:
            raise InvalidReferenceError("包名不能为空")

        matches = [
            package
            for package in self.index.all_packages
            if package.name.lower() == name.lower()
        ]
        if not matches:
            raise PackageNotFoundError(f"找不到名为 '{name}' 的包")
        if len(matches) > 1:
            candidates = ", ".join(p.full_name for p in matches)
            raise PackageNotFoundError(
                f"名称 '{name}' 对应多个包: {candidates}",
                context={"candidates": [p.full_name for p in matches]},
            )
        return matches[0]

    def search(self, text: str) -> List[Package]:
        """按全名子串搜索（不区分大小写）"""
        needle = text.strip().lower()
        return [
            package
            for package in self.index.all_packages
            if needle in package.full_name.lower()
        ]
