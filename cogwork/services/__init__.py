"""
Cogwork 服务层

包含业务逻辑服务：API 客户端、包来源、来源索引、模组解析、依赖处理、版本匹配。
"""

from cogwork.services.api_client import ThunderstoreClient
from cogwork.services.package_source import (
    PackageSource,
    PackageSourceService,
    SourceCache,
    ThunderstoreService,
)
from cogwork.services.source_index import PackageSourceIndex, default_source_index
from cogwork.services.mod_resolver import ModResolver
from cogwork.services.dependency_resolver import DependencyResolver
from cogwork.services.version_matcher import VersionMatcher

__all__ = [
    "ThunderstoreClient",
    "PackageSource",
    "PackageSourceService",
    "SourceCache",
    "ThunderstoreService",
    "PackageSourceIndex",
    "default_source_index",
    "ModResolver",
    "DependencyResolver",
    "VersionMatcher",
]
