"""タグ正規化とハッシュ.

タグ同一性（TagRecord.hash / TranslationEntry.origin_hash）と、
ソースファイルの変更検出（Source Ledger）に使う関数群です。

設計方針:
    - 同一性ハッシュは「正規化後テキスト（trim + lower）」の UTF-8 バイト列に対して計算する
    - Python 組み込みの hash() はプロセスごとにランダム化されるため使わない
    - ファイル変更検出は Adler-32（ファイル生バイト列）で行い、タグ同一性ハッシュとは混ぜない
    - fix tags モードの `_ -> space` と括弧アンエスケープは `prepare_tag` の責務
"""

from __future__ import annotations

import hashlib
import zlib
from pathlib import Path

_CHECKSUM_CHUNK_SIZE = 1 << 20

# fix tags モードでの置換（順序通りに適用）
_FIX_TAGS_REPLACEMENTS = (
    ("_", " "),
    ("\\(", "("),
    ("\\)", ")"),
)


def normalize_text(text: str) -> str:
    """同一性判定用に trim + 小文字化する."""
    return text.strip().lower()


def text_hash(text: str) -> int:
    """正規化テキストの 64bit 同一性ハッシュを返す.

    BLAKE2b（digest_size=8）を符号付き 64bit 整数として解釈します。
    SQLite の INTEGER にそのまま格納できるよう符号付きにしています。

    Examples:
        >>> text_hash("Witch") == text_hash("  witch ")
        True
    """
    digest = hashlib.blake2b(normalize_text(text).encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


def file_checksum(data: bytes) -> int:
    """ファイル内容のチェックサム（Adler-32）."""
    return zlib.adler32(data)


def file_checksum_path(path: Path | str) -> int:
    """ファイルをチャンク単位で読みながら Adler-32 を計算する.

    `file_checksum(path.read_bytes())` と同じ値になります。
    """
    checksum = zlib.adler32(b"")
    with open(path, "rb") as f:
        while chunk := f.read(_CHECKSUM_CHUNK_SIZE):
            checksum = zlib.adler32(chunk, checksum)
    return checksum


def prepare_tag(tag: str | None, fix_tags: bool) -> str | None:
    """fix tags モードの置換を適用する.

    Args:
        tag: 対象タグ（None/空白のみの場合はそのまま返す）
        fix_tags: True の場合 `_ -> space`, `\\( -> (`, `\\) -> )` を適用

    Examples:
        >>> prepare_tag("bow_\\\\(weapon\\\\)", True)
        'bow (weapon)'
        >>> prepare_tag("bow_\\\\(weapon\\\\)", False)
        'bow_\\\\(weapon\\\\)'
    """
    if tag is None or not tag.strip():
        return tag
    if fix_tags:
        for old, new in _FIX_TAGS_REPLACEMENTS:
            tag = tag.replace(old, new)
    return tag


def normalize_tag(source_tag: str, fix_tags: bool) -> str:
    """入力タグを TagRecord.text に変換する.

    Examples:
        >>> normalize_tag("Spiked_Collar", True)
        'spiked collar'
        >>> normalize_tag("Spiked_Collar", False)
        'spiked_collar'
    """
    return prepare_tag(normalize_text(source_tag), fix_tags) or ""
