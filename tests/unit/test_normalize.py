"""Unit tests for normalize utilities."""

import hashlib
import zlib
from pathlib import Path

from booru_tag_store.core.normalize import (
    file_checksum,
    file_checksum_path,
    normalize_tag,
    normalize_text,
    prepare_tag,
    text_hash,
)


class TestNormalizeText:
    def test_trim_and_lowercase(self) -> None:
        assert normalize_text("  Witch ") == "witch"
        assert normalize_text("HATSUNE_MIKU") == "hatsune_miku"


class TestTextHash:
    def test_same_hash_for_case_and_whitespace_variants(self) -> None:
        assert text_hash("Witch") == text_hash("witch") == text_hash("  WITCH  ")

    def test_different_text_different_hash(self) -> None:
        assert text_hash("witch") != text_hash("witches")

    def test_stable_blake2b_value(self) -> None:
        """プロセスに依存しない（組み込み hash() を使っていない）ことを確認."""
        digest = hashlib.blake2b("long hair".encode("utf-8"), digest_size=8).digest()
        assert text_hash("Long Hair") == int.from_bytes(digest, "big", signed=True)

    def test_fits_signed_64bit(self) -> None:
        for text in ["cat", "猫", "long hair", ":D"]:
            h = text_hash(text)
            assert -(2**63) <= h < 2**63


class TestFileChecksum:
    def test_adler32(self) -> None:
        assert file_checksum(b"cat,5,5,\n") == zlib.adler32(b"cat,5,5,\n")

    def test_streaming_matches_in_memory(self, tmp_path: Path) -> None:
        data = bytes(range(256)) * 10_000  # 1MB チャンクを跨ぐサイズ
        p = tmp_path / "big.txt"
        p.write_bytes(data)
        assert file_checksum_path(p) == file_checksum(data)

    def test_empty_file(self, tmp_path: Path) -> None:
        p = tmp_path / "empty.txt"
        p.write_bytes(b"")
        assert file_checksum_path(p) == file_checksum(b"") == 1


class TestPrepareTag:
    def test_fix_tags_enabled(self) -> None:
        assert prepare_tag("spiked_collar", True) == "spiked collar"
        assert prepare_tag(r"bow_\(weapon\)", True) == "bow (weapon)"

    def test_fix_tags_disabled(self) -> None:
        assert prepare_tag(r"bow_\(weapon\)", False) == r"bow_\(weapon\)"

    def test_blank_passthrough(self) -> None:
        assert prepare_tag(None, True) is None
        assert prepare_tag("   ", True) == "   "


class TestNormalizeTag:
    def test_with_fix_tags(self) -> None:
        assert normalize_tag("  Spiked_Collar ", True) == "spiked collar"

    def test_without_fix_tags(self) -> None:
        assert normalize_tag("  Spiked_Collar ", False) == "spiked_collar"
