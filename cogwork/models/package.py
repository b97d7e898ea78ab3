"""
包身份模型

定义作者、包、包版本以及依赖引用字符串的解析与查找。

所有权方向为 来源 -> 包 -> 版本；``Package.source`` 与 ``PackageVersion.package``
只是用于查找的反向引用，不持有对象。
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from loguru import logger
from packaging.version import InvalidVersion, Version

from cogwork.exceptions import (
    InvalidReferenceError,
    PackageNotFoundError,
    ResolutionError,
    UnsupportedSourceError,
    VersionNotFoundError,
)

if TYPE_CHECKING:
    from cogwork.services.package_source import PackageSource
    from cogwork.services.source_index import PackageSourceIndex

    LookupScope = Union[PackageSource, PackageSourceIndex]


THUNDERSTORE_TAG = "thunderstore"

# 目前唯一实现的来源标签
KNOWN_SOURCE_TAGS = frozenset({THUNDERSTORE_TAG})


def parse_version(text: str) -> Version:
    """解析版本号，无效时抛出 InvalidVersion"""
    return Version(text.strip())


@dataclass(frozen=True)
class Author:
    """作者，仅用于组成包身份"""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class DependencyReference:
    """
    依赖引用 ``Author-Name[-Version[-SourceTag]]``

    前两段为包身份，第三段为版本，第四段为非默认来源标签。
    """

    author: str
    name: str
    version: Optional[Version] = None
    source_tag: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.author}-{self.name}"

    @classmethod
    def parse(cls, reference: str) -> "DependencyReference":
        parts = reference.strip().split("-")
        if len(parts) < 2 or len(parts) > 4 or not all(parts[:2]):
            raise InvalidReferenceError(
                f"无效的包引用: '{reference}'", context={"reference": reference}
            )

        version = None
        if len(parts) >= 3:
            try:
                version = parse_version(parts[2])
            except InvalidVersion as e:
                raise InvalidReferenceError(
                    f"包引用 '{reference}' 中的版本号无效: {parts[2]}",
                    context={"reference": reference},
                ) from e

        source_tag = None
        if len(parts) == 4:
            source_tag = parts[3].lower()
            if source_tag not in KNOWN_SOURCE_TAGS:
                raise UnsupportedSourceError(
                    f"包引用 '{reference}' 使用了未实现的来源: {parts[3]}",
                    context={"reference": reference, "source": parts[3]},
                )

        return cls(parts[0], parts[1], version, source_tag)

    def __str__(self) -> str:
        text = self.full_name
        if self.version is not None:
            text += f"-{self.version}"
        if self.source_tag:
            text += f"-{self.source_tag}"
        return text


@dataclass(eq=False)
class Package:
    """
    一个模组及其所有已发布版本

    身份为 (作者, 名称)，按对象同一性比较与哈希；同一来源内同名的包只有一个实例。
    ``versions`` 按从新到旧排列。
    """

    author: Author
    name: str
    versions: List["PackageVersion"] = field(default_factory=list)
    source: Optional["PackageSource"] = field(default=None, repr=False, compare=False)

    @property
    def full_name(self) -> str:
        return f"{self.author.name}-{self.name}"

    @property
    def latest(self) -> "PackageVersion":
        return self.versions[0]

    def get_version(self, version: Version) -> Optional["PackageVersion"]:
        for package_version in self.versions:
            if package_version.version == version:
                return package_version
        return None

    def add_version(
        self, version: Version, dependency_strings: Optional[List[str]] = None
    ) -> "PackageVersion":
        """追加一个版本并保持从新到旧的顺序"""
        package_version = PackageVersion(self, version, list(dependency_strings or []))
        self.versions.append(package_version)
        self.versions.sort(key=lambda v: v.version, reverse=True)
        return package_version

    def merge_from(self, fresh: "Package") -> None:
        """
        用新解析出的同名包原地更新本实例

        已存在的版本对象被保留并更新其依赖字符串，新增版本改为指向本实例；
        其他对象持有的 Package / PackageVersion 引用因此保持有效。
        """
        existing = {v.version: v for v in self.versions}
        merged = []
        for package_version in fresh.versions:
            old = existing.get(package_version.version)
            if old is None:
                package_version.package = self
                merged.append(package_version)
            else:
                old.dependency_strings = package_version.dependency_strings
                old.invalidate()
                merged.append(old)
        self.versions = merged

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Package":
        """
        将包索引中的一项转换为 Package

        格式: ``{"full_name": str, "versions": [{"version_number": str, "dependencies": [str]}]}``
        """
        full_name = data["full_name"]
        if "owner" in data and "name" in data:
            author, name = data["owner"], data["name"]
        else:
            author, sep, name = full_name.partition("-")
            if not sep or not author or not name:
                raise ValueError(f"无效的包全名: '{full_name}'")

        package = cls(Author(author), name)
        for version_data in data.get("versions", []):
            raw = version_data.get("version_number", "")
            try:
                version = parse_version(raw)
            except InvalidVersion:
                logger.warning(f"跳过包 '{full_name}' 的无效版本号: '{raw}'")
                continue
            dependencies = version_data.get("dependencies") or []
            if not isinstance(dependencies, list):
                raise TypeError(
                    f"包 '{full_name}' 版本 {raw} 的 dependencies 必须是数组"
                )
            package.versions.append(PackageVersion(package, version, list(dependencies)))
        package.versions.sort(key=lambda v: v.version, reverse=True)
        return package

    def describe(self) -> str:
        """包含各版本已解析依赖的多行描述"""
        lines = [f"{self.full_name} {{"]
        for package_version in self.versions:
            lines.append(f"  {package_version.version}: {{")
            lines.append("    dependencies: [")
            for dependency in package_version.marked_dependencies:
                lines.append(f"      {dependency}")
            lines.append("    ]")
            lines.append("  }")
        lines.append("}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.full_name


@dataclass(eq=False)
class PackageVersion:
    """
    包的一个已发布版本

    ``dependency_strings`` 为原始依赖引用；``marked_dependencies`` 在首次访问时解析
    并缓存，索引重新导入时通过 ``invalidate`` 清除。
    """

    package: Package = field(repr=False)
    version: Version
    dependency_strings: List[str] = field(default_factory=list)
    _marked: Optional[List["PackageVersion"]] = field(
        default=None, init=False, repr=False
    )

    @property
    def marked_dependencies(self) -> List["PackageVersion"]:
        if self._marked is None:
            self._marked = self._resolve_dependencies()
        return self._marked

    def invalidate(self) -> None:
        self._marked = None

    def _resolve_dependencies(self) -> List["PackageVersion"]:
        scope = _lookup_scope(self.package)
        if scope is None:
            if self.dependency_strings:
                logger.warning(f"'{self}' 未关联任何来源，无法解析其依赖")
            return []

        resolved = []
        for reference in self.dependency_strings:
            try:
                resolved.append(
                    get_package_version(scope, reference, fallback_to_latest=True)
                )
            except UnsupportedSourceError:
                raise
            except ResolutionError as e:
                logger.error(f"'{self}' 的依赖 '{reference}' 无法解析，已忽略: {e}")
        return resolved

    def reference(self) -> str:
        """序列化为引用字符串，来源不是索引默认来源时附加来源标签"""
        text = str(self)
        source = self.package.source
        if source is not None and source.index is not None:
            if source is not source.index.default:
                text += f"-{source.service.tag}"
        return text

    def __str__(self) -> str:
        return f"{self.package.full_name}-{self.version}"


def _lookup_scope(package: Package) -> Optional["LookupScope"]:
    source = package.source
    if source is None:
        return None
    return source.index if source.index is not None else source


def get_package_version(
    scope: "LookupScope",
    reference: Union[str, DependencyReference],
    fallback_to_latest: bool = False,
) -> PackageVersion:
    """
    把依赖引用解析为具体的 PackageVersion

    Args:
        scope: PackageSourceIndex 或单个 PackageSource
        reference: 引用字符串或已解析的引用
        fallback_to_latest: 版本不存在时退回到最新版本并记录警告

    Raises:
        InvalidReferenceError: 引用格式无效
        UnsupportedSourceError: 来源标签无法识别
        PackageNotFoundError: 包不存在
        VersionNotFoundError: 版本不存在且未启用回退
    """
    if isinstance(reference, str):
        reference = DependencyReference.parse(reference)

    package = scope.find_package(reference.full_name, reference.source_tag)
    if package is None or not package.versions:
        raise PackageNotFoundError(
            f"找不到包 '{reference.full_name}'",
            context={"reference": str(reference)},
        )

    if reference.version is None:
        return package.latest

    package_version = package.get_version(reference.version)
    if package_version is not None:
        return package_version

    if fallback_to_latest:
        logger.warning(
            f"找不到 '{reference.full_name}' 的版本 {reference.version}，"
            f"改用最新版本 {package.latest.version}"
        )
        return package.latest

    raise VersionNotFoundError(
        f"找不到 '{reference.full_name}' 的版本 {reference.version}",
        context={"reference": str(reference)},
    )
