"""Tests for perch.cache — memoized digests and filename recovery."""

import os
import threading

from conftest import CSS, JS, CountingHasher, md5_8

from perch.cache import HashCache, HashLookup, LookupStatus
from perch.errors import NotFound
from perch.filesystem import FileResolver


def _cache(static_dir, hasher, alt_dir=None, filenames=None) -> HashCache:
    return HashCache(hasher, FileResolver(static_dir, alt_dir), filenames=filenames)


class TestHashLookup:
    def test_flags(self) -> None:
        assert HashLookup(LookupStatus.FOUND, "deadbeef").found
        assert HashLookup(LookupStatus.CONTINUE).continuable
        assert not HashLookup(LookupStatus.FAILED).continuable
        assert not HashLookup(LookupStatus.NOT_REGULAR).found


class TestLookupByContent:
    def test_hashes_file(self, static_dir, hasher) -> None:
        lookup = _cache(static_dir, hasher).lookup_by_content("/css/app.css")
        assert lookup.status is LookupStatus.FOUND
        assert lookup.digest == md5_8(CSS)

    def test_second_lookup_hits_cache(self, static_dir, hasher) -> None:
        cache = _cache(static_dir, hasher)
        first = cache.lookup_by_content("/css/app.css")
        second = cache.lookup_by_content("/css/app.css")
        assert first.digest == second.digest
        assert hasher.calls == 1
        assert "/css/app.css" in cache
        assert len(cache) == 1

    def test_cached_digest_survives_file_change(self, static_dir, hasher) -> None:
        cache = _cache(static_dir, hasher)
        before = cache.lookup_by_content("/css/app.css").digest
        (static_dir / "css" / "app.css").write_bytes(b"changed")
        assert cache.lookup_by_content("/css/app.css").digest == before

    def test_clear_forgets_digests(self, static_dir, hasher) -> None:
        cache = _cache(static_dir, hasher)
        cache.lookup_by_content("/css/app.css")
        cache.clear()
        assert len(cache) == 0
        cache.lookup_by_content("/css/app.css")
        assert hasher.calls == 2

    def test_missing_file_is_continuable(self, static_dir, hasher) -> None:
        lookup = _cache(static_dir, hasher).lookup_by_content("/nope.css")
        assert lookup.continuable
        assert isinstance(lookup.error, FileNotFoundError)
        assert hasher.calls == 0

    def test_directory_is_not_regular(self, static_dir, hasher) -> None:
        cache = _cache(static_dir, hasher)
        lookup = cache.lookup_by_content("/docs")
        assert lookup.status is LookupStatus.NOT_REGULAR
        assert "/docs" not in cache

    def test_hasher_io_error_fails(self, static_dir) -> None:
        class BrokenHasher(CountingHasher):
            def hash(self, stream):
                raise OSError("disk on fire")

        lookup = _cache(static_dir, BrokenHasher()).lookup_by_content("/app.js")
        assert lookup.status is LookupStatus.FAILED
        assert isinstance(lookup.error, OSError)
        assert not lookup.continuable

    def test_alternate_directory_content_wins(self, static_dir, alt_dir, hasher) -> None:
        lookup = _cache(static_dir, hasher, alt_dir).lookup_by_content("/app.js")
        assert lookup.digest == md5_8(b"alt wins")

    def test_concurrent_misses_agree(self, static_dir, hasher) -> None:
        cache = _cache(static_dir, hasher)
        results: list[str] = []
        start = threading.Barrier(8, timeout=5)

        def worker() -> None:
            start.wait()
            results.append(cache.lookup_by_content("/app.js").digest)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert results == [md5_8(JS)] * 8
        assert len(cache) == 1
        assert 1 <= hasher.calls <= 8


class TestLookupByFilename:
    def test_recovers_digest_from_hashed_copy(self, static_dir, hasher) -> None:
        (static_dir / "css" / "site.deadbeef.css").write_text("x")
        cache = _cache(static_dir, hasher)
        lookup = cache.lookup_by_filename("/css/site.css")
        assert lookup.status is LookupStatus.FOUND
        assert lookup.digest == "deadbeef"
        assert cache.get("/css/site.css") == "deadbeef"
        assert hasher.calls == 0

    def test_without_extension(self, static_dir, hasher) -> None:
        (static_dir / "LICENSE.0badf00d").write_text("x")
        lookup = _cache(static_dir, hasher).lookup_by_filename("/LICENSE")
        assert lookup.digest == "0badf00d"

    def test_ignores_names_that_are_not_digests(self, static_dir, hasher) -> None:
        (static_dir / "css" / "site.print.css").write_text("x")
        lookup = _cache(static_dir, hasher).lookup_by_filename("/css/site.css")
        assert lookup.status is LookupStatus.FAILED
        assert isinstance(lookup.error, NotFound)
        assert not lookup.continuable

    def test_ignores_longer_stems(self, static_dir, hasher) -> None:
        (static_dir / "css" / "site-extra.deadbeef.css").write_text("x")
        lookup = _cache(static_dir, hasher).lookup_by_filename("/css/site.css")
        assert lookup.status is LookupStatus.FAILED

    def test_no_match_is_not_found(self, static_dir, hasher) -> None:
        lookup = _cache(static_dir, hasher).lookup_by_filename("/css/missing.css")
        assert lookup.status is LookupStatus.FAILED
        assert isinstance(lookup.error, NotFound)

    def test_glob_metacharacters_are_literal(self, static_dir, hasher) -> None:
        (static_dir / "a[1].deadbeef.css").write_text("x")
        lookup = _cache(static_dir, hasher).lookup_by_filename("/a[1].css")
        assert lookup.digest == "deadbeef"

    def test_alternate_directory_first(self, static_dir, alt_dir, hasher) -> None:
        (alt_dir / "lib.11111111.js").write_text("a")
        (static_dir / "lib.22222222.js").write_text("b")
        lookup = _cache(static_dir, hasher, alt_dir).lookup_by_filename("/lib.js")
        assert lookup.digest == "11111111"

    def test_uses_filename_list_instead_of_disk(self, static_dir, hasher) -> None:
        filenames = [
            os.path.join(str(static_dir), "css", "theme.cafebabe.css"),
            os.path.join(str(static_dir), "css", "other.deadbeef.css"),
        ]
        cache = _cache(static_dir, hasher, filenames=filenames)
        assert cache.lookup_by_filename("/css/theme.css").digest == "cafebabe"
        # Exists on disk but not in the list
        (static_dir / "css" / "disk.deadbeef.css").write_text("x")
        assert cache.lookup_by_filename("/css/disk.css").status is LookupStatus.FAILED

    def test_filename_list_matches_uncleaned_directory(self, static_dir, hasher, monkeypatch) -> None:
        monkeypatch.chdir(static_dir.parent)
        filenames = ["static/css/theme.cafebabe.css", "./static//css/other.deadbeef.css"]
        cache = HashCache(hasher, FileResolver("./static"), filenames=filenames)
        assert cache.lookup_by_filename("/css/theme.css").digest == "cafebabe"
        assert cache.lookup_by_filename("/css/other.css").digest == "deadbeef"

    def test_filename_list_respects_alternate_directory(self, static_dir, alt_dir, hasher) -> None:
        filenames = [
            os.path.join(str(static_dir), "lib.22222222.js"),
            os.path.join(str(alt_dir), "lib.11111111.js"),
        ]
        cache = _cache(static_dir, hasher, alt_dir, filenames=filenames)
        assert cache.lookup_by_filename("/lib.js").digest == "11111111"

    def test_cached_content_digest_is_reused(self, static_dir, hasher) -> None:
        cache = _cache(static_dir, hasher)
        digest = cache.lookup_by_content("/app.js").digest
        assert cache.lookup_by_filename("/app.js").digest == digest
