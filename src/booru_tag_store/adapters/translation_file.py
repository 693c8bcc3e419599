"""翻訳ファイルの行フォーマット.

翻訳ファイルは1行1エントリのテキストです。

    //Translation format: <original>=<translation>
    *long hair=長い髪        （先頭 `*` は手動登録）
    cat=猫

旧形式（拡張子 .csv）は区切りがカンマです。

    //Translation format: <original>,<translation>
    long_hair,長い髪

旧CSV形式の `_` / space の扱い（どちらで変換するかを明示するためここに集約）:
    - 読み込み時: original の `_` を space に戻す
    - 書き込み時: original の space を `_` にする
    - TXT形式では original を書き換えない
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import NamedTuple

COMMENT_PREFIX = "//"
MANUAL_MARK = "*"


class TranslationFileFormat(Enum):
    """翻訳ファイルの形式."""

    TXT = "txt"
    CSV = "csv"

    @property
    def separator(self) -> str:
        return "," if self is TranslationFileFormat.CSV else "="

    @property
    def header(self) -> str:
        return f"{COMMENT_PREFIX}Translation format: <original>{self.separator}<translation>"

    @classmethod
    def from_path(cls, path: Path | str) -> TranslationFileFormat:
        return cls.CSV if Path(path).suffix.lower() == ".csv" else cls.TXT


class TranslationLine(NamedTuple):
    """翻訳ファイル1行の解析結果."""

    original: str
    translation: str
    is_manual: bool


def parse_translation_line(line: str, file_format: TranslationFileFormat) -> TranslationLine | None:
    """翻訳ファイルの1行を解析する.

    区切り文字は「最後の」`=`（CSV形式では `,`）を採用します。original 側に区切り文字が
    含まれていても壊れないようにするためです。

    Returns:
        解析結果。コメント行、区切りなし、original が空の場合は None

    Examples:
        >>> parse_translation_line("*a=b=c", TranslationFileFormat.TXT)
        TranslationLine(original='a=b', translation='c', is_manual=True)
        >>> parse_translation_line("long_hair,長い髪", TranslationFileFormat.CSV)
        TranslationLine(original='long hair', translation='長い髪', is_manual=False)
    """
    if line.strip().startswith(COMMENT_PREFIX):
        return None

    is_manual = line.startswith(MANUAL_MARK)
    if is_manual:
        line = line[len(MANUAL_MARK) :]

    index = line.rfind(file_format.separator)
    if index == -1:
        return None

    original = line[:index].strip()
    translation = line[index + 1 :].strip()
    if file_format is TranslationFileFormat.CSV:
        original = original.replace("_", " ")

    if not original:
        return None
    return TranslationLine(original, translation, is_manual)


def flatten_line_breaks(text: str) -> str:
    """改行を空白1つに置き換える（1エントリ1行を保つため）.

    Examples:
        >>> flatten_line_breaks("長い\\n髪 ")
        '長い 髪'
    """
    return " ".join(part.strip() for part in text.splitlines() if part.strip())


def format_translation_line(
    original: str,
    translation: str,
    is_manual: bool,
    file_format: TranslationFileFormat,
) -> str:
    """翻訳ファイルに追記する1行（改行なし）を作る.

    読み込みは最後の区切り文字で分割するため、translation に区切り文字を含む行は
    書き出せません（original 側は含んでいてもよい）。

    Raises:
        ValueError: 改行を含む、または translation に区切り文字を含む場合

    Examples:
        >>> format_translation_line("long hair", "長い髪", True, TranslationFileFormat.TXT)
        '*long hair=長い髪'
        >>> format_translation_line("long hair", "長い髪", False, TranslationFileFormat.CSV)
        'long_hair,長い髪'
    """
    if any(ch in original or ch in translation for ch in "\r\n"):
        raise ValueError(f"Translation entry must be a single line: {original!r}")
    if file_format.separator in translation:
        raise ValueError(
            f"Translation must not contain {file_format.separator!r}: {original!r} -> {translation!r}"
        )
    if file_format is TranslationFileFormat.CSV:
        original = original.replace(" ", "_")
    mark = MANUAL_MARK if is_manual else ""
    return f"{mark}{original}{file_format.separator}{translation}"
