"""Tests for perch.hashing — the hashlib-backed hasher."""

import hashlib
import io

import pytest

from perch.hashing import Hasher, HexHasher


class TestHexHasher:
    def test_default_is_eight_md5_hex_chars(self) -> None:
        digest = HexHasher().hash(io.BytesIO(b"body { color: red; }"))
        assert digest == hashlib.md5(b"body { color: red; }").hexdigest()[:8]

    def test_other_algorithm_and_length(self) -> None:
        hasher = HexHasher("sha256", 12)
        assert hasher.hash(io.BytesIO(b"abc")) == hashlib.sha256(b"abc").hexdigest()[:12]

    def test_zero_length_keeps_full_digest(self) -> None:
        hasher = HexHasher("sha1", 0)
        assert hasher.length == 40
        assert hasher.hash(io.BytesIO(b"abc")) == hashlib.sha1(b"abc").hexdigest()

    def test_hashes_from_current_position(self) -> None:
        stream = io.BytesIO(b"skip-abc")
        stream.seek(5)
        assert HexHasher().hash(stream) == hashlib.md5(b"abc").hexdigest()[:8]

    def test_hashes_streams_larger_than_one_read(self) -> None:
        body = b"0123456789abcdef" * 10_000
        stream = io.BytesIO(b"x" + body)
        stream.seek(1)
        assert HexHasher("sha256", 0).hash(stream) == hashlib.sha256(body).hexdigest()

    def test_length_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="length"):
            HexHasher("md5", 33)
        with pytest.raises(ValueError, match="length"):
            HexHasher("md5", -1)

    def test_unknown_algorithm(self) -> None:
        with pytest.raises(ValueError):
            HexHasher("not-an-algorithm")

    @pytest.mark.parametrize("value", ["deadbeef", "01234567", "abcdef00"])
    def test_is_hash_accepts_digests(self, value: str) -> None:
        assert HexHasher().is_hash(value)

    @pytest.mark.parametrize("value", ["", "deadbee", "deadbeef0", "DEADBEEF", "deadbeeg", "min", "css"])
    def test_is_hash_rejects_other_segments(self, value: str) -> None:
        assert not HexHasher().is_hash(value)

    def test_satisfies_protocol(self) -> None:
        assert isinstance(HexHasher(), Hasher)

    def test_repr(self) -> None:
        assert repr(HexHasher()) == "HexHasher(algorithm='md5', length=8)"
