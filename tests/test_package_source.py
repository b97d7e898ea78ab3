"""包来源获取、缓存与导入测试"""

import asyncio
import copy
import json
import os

from packaging.version import Version

from cogwork.models.config import CogworkSettings
from cogwork.services.package_source import PackageSource, SourceCache
from cogwork.services.source_index import PackageSourceIndex

from tests.conftest import MOCK_INDEX, TEST_GAME, FakeService, entry, find, version_of

TTL = 60.0


def make_source(paths, clock, payload=None, settings=None):
    service = FakeService(TEST_GAME, copy.deepcopy(payload or MOCK_INDEX))
    source = PackageSource(service, paths, settings or CogworkSettings(), clock)
    PackageSourceIndex(TEST_GAME, [source])
    return source, service


class TestImport:
    def test_reimport_keeps_identities(self, paths, clock):
        source, _ = make_source(paths, clock)
        assert source.import_index(json.dumps(MOCK_INDEX))
        first = {p.full_name: p for p in source.packages}

        assert source.import_index(json.dumps(MOCK_INDEX))
        second = {p.full_name: p for p in source.packages}

        assert len(second) == len(first) == len(MOCK_INDEX)
        for full_name, package in second.items():
            assert package is first[full_name]

    def test_old_version_reference_sees_updated_data(self, paths, clock):
        payload = [entry("A-Core", ("1.0.0", [])), entry("B-Items", ("1.0.0", []))]
        source, _ = make_source(paths, clock, payload)
        source.import_index(json.dumps(payload))
        items = version_of(source.index, "B-Items-1.0.0")
        assert items.marked_dependencies == []

        updated = [
            entry("A-Core", ("1.1.0", []), ("1.0.0", [])),
            entry("B-Items", ("1.0.0", ["A-Core-1.1.0"])),
        ]
        source.import_index(json.dumps(updated))

        assert items.dependency_strings == ["A-Core-1.1.0"]
        assert [str(d) for d in items.marked_dependencies] == ["A-Core-1.1.0"]
        core = find(source.index, "A-Core")
        assert core.latest.version == Version("1.1.0")
        assert core.latest.package is core

    def test_removed_package_leaves_name_table(self, paths, clock):
        source, _ = make_source(paths, clock)
        source.import_index(json.dumps(MOCK_INDEX))
        source.import_index(json.dumps(MOCK_INDEX[1:]))
        assert source.find_package("MonoDetour-MonoDetour") is None
        assert len(source.packages) == len(MOCK_INDEX) - 1

    def test_packages_point_back_to_source(self, paths, clock):
        source, _ = make_source(paths, clock)
        source.import_index(json.dumps(MOCK_INDEX))
        assert all(p.source is source for p in source.packages)

    def test_invalid_entries_are_skipped(self, paths, clock):
        source, _ = make_source(paths, clock)
        data = [
            {"versions": []},
            entry("NoVersions-Pkg"),
            "not an object",
            {
                "full_name": "S-StringDeps",
                "versions": [{"version_number": "1.0.0", "dependencies": "A-Core-1.0.0"}],
            },
            entry("A-Core", ("1.0.0", [])),
        ]
        assert source.import_index(json.dumps(data))
        assert [p.full_name for p in source.packages] == ["A-Core"]

    def test_trailing_commas_are_tolerated(self, paths, clock):
        source, _ = make_source(paths, clock)
        data = '[{"full_name": "A-Core", "versions": [{"version_number": "1.0.0", "dependencies": [],},],},]'
        assert source.import_index(data)
        assert source.find_package("A-Core") is not None

    def test_garbage_is_rejected(self, paths, clock):
        source, _ = make_source(paths, clock)
        assert not source.import_index("{not json")
        assert not source.import_index('{"an": "object"}')
        assert not source.is_imported


class TestFetch:
    def test_ttl_gating(self, paths, clock):
        source, service = make_source(paths, clock)

        assert asyncio.run(source.fetch_package_index(TTL))
        assert service.calls == 1

        clock.advance(TTL / 2)
        assert asyncio.run(source.fetch_package_index(TTL))
        assert service.calls == 1

        clock.advance(TTL)
        assert asyncio.run(source.fetch_package_index(TTL))
        assert service.calls == 2

    def test_clock_before_last_fetch_forces_refetch(self, paths, clock):
        source, service = make_source(paths, clock)
        asyncio.run(source.fetch_package_index(TTL))

        clock.advance(-5)
        asyncio.run(source.fetch_package_index(TTL))
        assert service.calls == 2

    def test_fetch_writes_index_and_cache_files(self, paths, clock):
        source, _ = make_source(paths, clock)
        asyncio.run(source.fetch_package_index(TTL))

        assert os.path.isfile(source.index_file)
        assert source.index_file.endswith(os.path.join("test-game", "fake-index.json"))
        with open(source.cache_file, encoding="utf-8") as f:
            record = json.load(f)
        assert SourceCache.from_dict(record).last_fetch == clock.now
        assert len(source.packages) == len(MOCK_INDEX)

    def test_failed_fetch_keeps_timestamp(self, paths, clock):
        source, service = make_source(paths, clock)
        service.fail = True

        assert not asyncio.run(source.fetch_package_index(TTL))
        assert source.cache.last_fetch is None
        assert not os.path.exists(source.cache_file)

        service.fail = False
        clock.advance(1)
        assert asyncio.run(source.fetch_package_index(TTL))
        assert service.calls == 2

    def test_unparsable_payload_keeps_timestamp(self, paths, clock):
        source, service = make_source(paths, clock)
        service.payload = {"not": "a list"}

        assert not asyncio.run(source.fetch_package_index(TTL))
        assert source.cache.last_fetch is None
        assert not os.path.exists(source.index_file)

    def test_fresh_cache_is_reused_by_new_source(self, paths, clock):
        first, _ = make_source(paths, clock)
        asyncio.run(first.fetch_package_index(TTL))

        clock.advance(1)
        second, service = make_source(paths, clock)
        assert asyncio.run(second.fetch_package_index(TTL))
        assert service.calls == 0
        assert second.find_package("PEAKLib-PEAKLib.Core") is not None

    def test_fresh_timestamp_without_index_file_refetches(self, paths, clock):
        first, _ = make_source(paths, clock)
        asyncio.run(first.fetch_package_index(TTL))
        os.remove(first.index_file)

        second, service = make_source(paths, clock)
        assert asyncio.run(second.fetch_package_index(TTL))
        assert service.calls == 1

    def test_corrupt_cache_record_is_treated_as_missing(self, paths, clock):
        source, service = make_source(paths, clock)
        os.makedirs(os.path.dirname(source.cache_file), exist_ok=True)
        with open(source.cache_file, "w", encoding="utf-8") as f:
            f.write("{{{ garbage")

        assert asyncio.run(source.fetch_package_index(TTL))
        assert service.calls == 1

    def test_manual_refresh_uses_short_ttl(self, paths, clock):
        settings = CogworkSettings(automatic_refresh_minutes=20, manual_refresh_seconds=10)
        source, service = make_source(paths, clock, settings=settings)

        asyncio.run(source.get_packages())
        clock.advance(11)
        asyncio.run(source.get_packages())
        assert service.calls == 1

        packages = asyncio.run(source.get_packages(manual=True))
        assert service.calls == 2
        assert len(packages) == len(MOCK_INDEX)
