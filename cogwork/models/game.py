"""
游戏定义

游戏提供名称、文件系统安全的 slug 以及平台信息，用于划分缓存与数据目录。
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence


@dataclass(frozen=True)
class SteamId:
    id: int


@dataclass(frozen=True)
class Platforms:
    steam: Optional[SteamId] = None


@dataclass(frozen=True)
class Game:
    """支持的游戏"""

    name: str
    slug: str
    platforms: Platforms = field(default_factory=Platforms)


SILKSONG = Game(
    name="Hollow Knight: Silksong",
    slug="hollow-knight-silksong",
    platforms=Platforms(steam=SteamId(1030300)),
)

PEAK = Game(
    name="PEAK",
    slug="peak",
    platforms=Platforms(steam=SteamId(3527290)),
)

SUPPORTED_GAMES: List[Game] = [SILKSONG, PEAK]


def get_game(slug: Optional[str]) -> Optional[Game]:
    for game in SUPPORTED_GAMES:
        if game.slug == slug:
            return game
    return None


def find_games(
    query: str,
    games: Sequence[Game] = SUPPORTED_GAMES,
    exact_only: bool = False,
) -> List[Game]:
    """
    按名称或 slug 查找游戏（不区分大小写）

    先尝试完全匹配；``exact_only`` 为 False 时再按子串匹配。
    """
    needle = query.strip().lower()
    if not needle:
        return []

    exact = [g for g in games if needle in (g.name.lower(), g.slug)]
    if exact or exact_only:
        return exact

    return [g for g in games if needle in g.name.lower() or needle in g.slug]
