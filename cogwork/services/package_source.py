"""
包来源

一个来源对应一个可获取、可缓存的包索引地址。来源维护自己的 全名 -> Package 表，
重复导入时原地更新已有实例，不会产生重复身份。
"""

import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, TYPE_CHECKING
from urllib.parse import urlparse

import aiofiles
import aiohttp
from loguru import logger

from cogwork.exceptions import CogworkError, UnsupportedSourceError
from cogwork.models.config import CogworkSettings
from cogwork.models.game import Game
from cogwork.models.package import THUNDERSTORE_TAG, Package
from cogwork.paths import CogworkPaths
from cogwork.services.api_client import ThunderstoreClient, community_url
from cogwork.storage import load_json, loads_lenient, read_text, save_json

if TYPE_CHECKING:
    from cogwork.services.source_index import PackageSourceIndex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PackageSourceService(ABC):
    """远程包索引服务"""

    # 依赖引用中使用的来源标签
    tag: str = ""
    # 缓存文件名前缀
    name: str = ""

    def __init__(self, game: Game):
        self.game = game

    @property
    @abstractmethod
    def url(self) -> str:
        """服务地址"""
        pass

    @abstractmethod
    async def fetch_index(self) -> bytes:
        """
        下载并解压包索引

        失败时抛出 CogworkError 或 aiohttp 异常。
        """
        pass


class ThunderstoreService(PackageSourceService):
    """Thunderstore 社区包索引"""

    tag = THUNDERSTORE_TAG
    name = "thunderstore"

    def __init__(
        self,
        game: Game,
        timeout: float = 60.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__(game)
        self.timeout = timeout
        self._session = session

    @property
    def url(self) -> str:
        return community_url(self.game.slug)

    async def fetch_index(self) -> bytes:
        async with ThunderstoreClient(self._session, self.timeout) as client:
            return await client.fetch_package_index(self.game.slug)


@dataclass
class SourceCache:
    """来源缓存记录 ``{"LastFetch": ISO-8601}``"""

    last_fetch: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "LastFetch": self.last_fetch.isoformat() if self.last_fetch else None
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SourceCache":
        raw = data.get("LastFetch")
        if raw is None:
            return cls()
        last_fetch = datetime.fromisoformat(raw)
        if last_fetch.tzinfo is None:
            last_fetch = last_fetch.replace(tzinfo=timezone.utc)
        return cls(last_fetch)


class PackageSource:
    """
    包来源

    ``index`` 是所属 PackageSourceIndex 的反向引用，由索引在加入时设置。
    """

    def __init__(
        self,
        service: PackageSourceService,
        paths: CogworkPaths,
        settings: Optional[CogworkSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.service = service
        self.paths = paths
        self.settings = settings or CogworkSettings()
        self.index: Optional["PackageSourceIndex"] = None
        self.packages: List[Package] = []
        self._name_to_package: Dict[str, Package] = {}
        self._cache: Optional[SourceCache] = None
        self._imported = False
        self._clock = clock or _utcnow

    @property
    def game(self) -> Game:
        return self.service.game

    @property
    def index_file(self) -> str:
        return os.path.join(
            self.paths.game_cache_dir(self.game.slug), f"{self.service.name}-index.json"
        )

    @property
    def cache_file(self) -> str:
        return os.path.join(
            self.paths.game_cache_dir(self.game.slug),
            f"{self.service.name}-index-cache.json",
        )

    @property
    def cache(self) -> SourceCache:
        """缓存记录，首次访问时从磁盘加载"""
        if self._cache is None:
            self._cache = load_json(self.cache_file, SourceCache.from_dict, SourceCache)
        return self._cache

    @property
    def is_imported(self) -> bool:
        return self._imported

    def is_stale(self, ttl_seconds: float, now: Optional[datetime] = None) -> bool:
        """当前时间早于上次获取（时钟异常）或超过 TTL 时视为过期"""
        now = now or self._clock()
        last_fetch = self.cache.last_fetch
        if last_fetch is None:
            return True
        if now < last_fetch:
            return True
        return now > last_fetch + timedelta(seconds=ttl_seconds)

    async def fetch_package_index(self, ttl_seconds: float) -> bool:
        """
        确保内存中有不早于 ttl_seconds 的包索引

        远程或解析失败时记录日志并返回 False，不更新缓存时间戳。
        """
        now = self._clock()
        logger.debug(f"'{self}' 上次获取: {self.cache.last_fetch}")

        if not self.is_stale(ttl_seconds, now):
            logger.info(
                f"使用 '{self}' 的缓存包索引，上次获取距今不足 {ttl_seconds:g} 秒"
            )
            if self._imported or self._import_from_file():
                return True
            logger.warning(f"'{self}' 的缓存包索引不可用，重新获取")

        try:
            data = await self.service.fetch_index()
        except (CogworkError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"获取 '{self}' 的包索引失败: {e}")
            return False

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.error(f"'{self}' 的包索引编码无效: {e}")
            return False

        if not self.import_index(text):
            return False

        try:
            os.makedirs(os.path.dirname(self.index_file), exist_ok=True)
            async with aiofiles.open(self.index_file, "w", encoding="utf-8") as f:
                await f.write(text)
            self.cache.last_fetch = now
            save_json(self.cache_file, self.cache.to_dict())
        except OSError as e:
            logger.error(f"写入 '{self}' 的包索引缓存失败: {e}")
            return False

        logger.debug(f"'{self}' 新的获取时间: {self.cache.last_fetch}")
        logger.success(f"'{self}' 包索引获取成功，共 {len(self.packages)} 个包")
        return True

    async def get_packages(self, manual: bool = False) -> List[Package]:
        """
        获取全部包，必要时先刷新

        Args:
            manual: 用户主动刷新时使用较短的 TTL
        """
        ttl = (
            self.settings.manual_ttl_seconds
            if manual
            else self.settings.automatic_ttl_seconds
        )
        await self.fetch_package_index(ttl)
        return list(self.packages)

    def _import_from_file(self) -> bool:
        data = read_text(self.index_file)
        if data is None:
            return False
        return self.import_index(data)

    def import_index(self, data: str) -> bool:
        """
        解析包索引并合并到名称表

        同名包保留已有实例，仅替换其版本列表。
        """
        try:
            entries = loads_lenient(data)
        except ValueError as e:
            logger.error(f"解析 '{self}' 的包索引失败: {e}")
            return False

        if not isinstance(entries, list):
            logger.error(f"'{self}' 的包索引应为数组，实际为 {type(entries).__name__}")
            return False

        packages: List[Package] = []
        for entry in entries:
            try:
                fresh = Package.from_dict(entry)
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logger.warning(f"跳过 '{self}' 中无效的包条目: {e}")
                continue

            if not fresh.versions:
                logger.warning(f"跳过没有有效版本的包 '{fresh.full_name}'")
                continue

            existing = self._name_to_package.get(fresh.full_name)
            if existing is None:
                fresh.source = self
                self._name_to_package[fresh.full_name] = fresh
                packages.append(fresh)
            else:
                existing.merge_from(fresh)
                packages.append(existing)

        current = {package.full_name for package in packages}
        for full_name in list(self._name_to_package):
            if full_name not in current:
                del self._name_to_package[full_name]

        self.packages = packages
        self._imported = True

        scope = self.index if self.index is not None else self
        scope.invalidate_links()
        return True

    def invalidate_links(self) -> None:
        """清除所有版本已缓存的依赖链接"""
        for package in self.packages:
            for package_version in package.versions:
                package_version.invalidate()

    def find_package(
        self, full_name: str, source_tag: Optional[str] = None
    ) -> Optional[Package]:
        if source_tag is not None and source_tag != self.service.tag:
            raise UnsupportedSourceError(
                f"来源 '{self}' 无法解析来源标签 '{source_tag}'",
                context={"source": source_tag},
            )
        return self._name_to_package.get(full_name)

    def __str__(self) -> str:
        url = urlparse(self.service.url)
        return url.netloc + url.path
