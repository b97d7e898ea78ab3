"""
API 客户端

实现 Thunderstore 社区包索引的获取：先取得一个 gzip 压缩的 JSON 数组，其中唯一的字符串
是真正的包索引地址；再下载该地址的 gzip 压缩 JSON。
"""

import gzip
import json
import zlib
from typing import Optional

import aiohttp
from loguru import logger

from cogwork.exceptions import APIError, APINotFoundError, SourceFetchError


THUNDERSTORE_BASE_URL = "https://thunderstore.io"

GZIP_MAGIC = b"\x1f\x8b"


def community_url(slug: str) -> str:
    return f"{THUNDERSTORE_BASE_URL}/c/{slug}/"


def listing_index_url(slug: str) -> str:
    return f"{THUNDERSTORE_BASE_URL}/c/{slug}/api/v1/package-listing-index/"


def decompress(body: bytes, url: str) -> bytes:
    """解压 gzip 内容；传输层已经解码过的内容原样返回"""
    if not body.startswith(GZIP_MAGIC):
        return body
    try:
        return gzip.decompress(body)
    except (OSError, EOFError, zlib.error) as e:
        raise SourceFetchError(f"解压失败: {e}", context={"url": url}) from e


class ThunderstoreClient:
    """Thunderstore API 客户端"""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 60.0,
    ):
        self._session = session
        self._owned_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _download(self, url: str) -> bytes:
        """下载原始响应体"""
        logger.info(f"正在获取: {url}")
        async with self.session.get(url) as response:
            if response.status == 200:
                return await response.read()
            elif response.status == 404:
                raise APINotFoundError(f"资源不存在: {url}", response=response)
            else:
                raise APIError(
                    f"API 请求失败 (状态码: {response.status})",
                    response=response,
                )

    async def get_package_index_url(self, slug: str) -> str:
        """获取包索引的实际下载地址"""
        url = listing_index_url(slug)
        body = decompress(await self._download(url), url)
        try:
            strings = json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            raise SourceFetchError(
                f"包索引地址不是有效的 JSON: {e}", context={"url": url}
            ) from e

        if not isinstance(strings, list):
            raise SourceFetchError(
                f"期望 string[]，实际收到 {type(strings).__name__}",
                context={"url": url},
            )
        if len(strings) != 1 or not isinstance(strings[0], str):
            raise SourceFetchError(
                f"期望 1 个字符串，实际收到 {len(strings)} 个",
                context={"url": url},
            )

        logger.debug(f"包索引地址: {strings[0]}")
        return strings[0]

    async def fetch_package_index(self, slug: str) -> bytes:
        """
        下载并解压包索引

        Returns:
            解压后的包索引 JSON 字节
        """
        index_url = await self.get_package_index_url(slug)
        return decompress(await self._download(index_url), index_url)

    async def close(self):
        """关闭客户端"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()
