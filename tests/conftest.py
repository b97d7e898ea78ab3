"""测试公共夹具"""

import json
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from cogwork.exceptions import SourceFetchError
from cogwork.models.config import CogworkSettings
from cogwork.models.game import Game
from cogwork.paths import CogworkPaths
from cogwork.services.package_source import PackageSource, PackageSourceService
from cogwork.services.source_index import PackageSourceIndex

TEST_GAME = Game(name="Test Game", slug="test-game")


def entry(full_name: str, *versions) -> dict:
    """构造包索引条目，versions 为 (version_number, [dependencies]) 元组"""
    return {
        "full_name": full_name,
        "versions": [
            {"version_number": number, "dependencies": list(deps)}
            for number, deps in versions
        ],
    }


MOCK_INDEX = [
    entry(
        "MonoDetour-MonoDetour",
        ("0.7.9", ["AuthorName-ItemMod-1.0.0"]),
        ("0.7.8", []),
    ),
    entry(
        "MonoDetour-MonoDetour_BepInEx_5",
        ("0.7.9", ["MonoDetour-MonoDetour-0.7.9"]),
        ("0.7.8", ["MonoDetour-MonoDetour-0.7.8"]),
    ),
    entry("Hamunii-AutoHookGenPatcher", ("1.0.0", [])),
    entry(
        "PEAKLib-PEAKLib.Core",
        ("1.0.1", ["MonoDetour-MonoDetour_BepInEx_5-0.7.9"]),
        ("1.0.0", ["Hamunii-AutoHookGenPatcher-1.0.0"]),
    ),
    entry(
        "PEAKLib-PEAKLib.Items",
        ("1.0.1", ["PEAKLib-PEAKLib.Core-1.0.1"]),
        ("1.0.0", ["PEAKLib-PEAKLib.Core-1.0.0"]),
    ),
]


class FakeClock:
    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeService(PackageSourceService):
    """返回固定包索引的服务，记录调用次数"""

    tag = "thunderstore"

    def __init__(self, game: Game, payload: List[dict], name: str = "fake"):
        super().__init__(game)
        self.name = name
        self.payload = payload
        self.calls = 0
        self.fail = False

    @property
    def url(self) -> str:
        return f"https://{self.name}.example/c/{self.game.slug}/"

    async def fetch_index(self) -> bytes:
        self.calls += 1
        if self.fail:
            raise SourceFetchError("模拟的获取失败")
        return json.dumps(self.payload).encode("utf-8")


@pytest.fixture
def paths(tmp_path) -> CogworkPaths:
    return CogworkPaths(
        cache_dir=str(tmp_path / "cache"), data_dir=str(tmp_path / "data")
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_index(paths, clock):
    """由包索引条目构造已导入的 PackageSourceIndex"""

    def factory(payload: List[dict], name: str = "fake") -> PackageSourceIndex:
        service = FakeService(TEST_GAME, payload, name)
        source = PackageSource(service, paths, CogworkSettings(), clock)
        index = PackageSourceIndex(TEST_GAME, [source])
        assert source.import_index(json.dumps(payload))
        return index

    return factory


@pytest.fixture
def mock_index(make_index) -> PackageSourceIndex:
    return make_index(MOCK_INDEX)


def find(index: PackageSourceIndex, full_name: str):
    package = index.find_package(full_name)
    assert package is not None, full_name
    return package


def version_of(index: PackageSourceIndex, reference: str):
    from cogwork.models.package import get_package_version

    return get_package_version(index, reference)
