"""CSV読み込みアダプタ（autocomplete 形式）.

`tag,category,count,aliases` 形式のCSVを読み込みます。

    1girl,0,4114588,"1girls,sole_female"
    solo,0,3426446,"female_solo,solo_female"

注意:
    - alias 列はダブルクォートで囲まれ、内部にカンマを含むため、カンマの単純分割はできない
    - 行の解析は正規表現を使わず、クォート状態を追う手書きスキャナで行う
    - count は3列目（2列目は category/type）。数値にできない行は読み飛ばす
"""

from __future__ import annotations

from typing import NamedTuple

from booru_tag_store.core.merge import ProtoTag

from .base_adapter import BaseAdapter

_QUOTE = '"'
_COMMA = ","


class CsvRow(NamedTuple):
    """CSV 1行の解析結果."""

    name: str
    category: str
    count: int
    aliases_field: str


def find_next_comma(line: str, start: int) -> int:
    """クォート外の次のカンマ位置を返す（見つからなければ -1）."""
    in_quotes = False
    for i in range(start, len(line)):
        ch = line[i]
        if ch == _QUOTE:
            in_quotes = not in_quotes
        elif ch == _COMMA and not in_quotes:
            return i
    return -1


def split_unquoted(text: str) -> list[str]:
    """クォート外のカンマで分割する."""
    parts: list[str] = []
    start = 0
    while True:
        comma = find_next_comma(text, start)
        if comma == -1:
            parts.append(text[start:])
            return parts
        parts.append(text[start:comma])
        start = comma + 1


def _unquote(text: str) -> str:
    if len(text) >= 2 and text.startswith(_QUOTE) and text.endswith(_QUOTE):
        return text[1:-1]
    return text


def parse_csv_line(line: str) -> CsvRow | None:
    """CSV 1行を `name, category, count, aliases` に分解する.

    Args:
        line: CSVの1行

    Returns:
        解析結果。列境界が見つからない、または count が 0 以上の整数でない場合は None

    Examples:
        >>> parse_csv_line('cat,5,5,"kitty,feline"')
        CsvRow(name='cat', category='5', count=5, aliases_field='"kitty,feline"')
        >>> parse_csv_line("cat,0,many") is None
        True
    """
    if not line or not line.strip():
        return None

    first = find_next_comma(line, 0)
    if first == -1:
        return None
    second = find_next_comma(line, first + 1)
    if second == -1:
        return None

    third = find_next_comma(line, second + 1)
    if third == -1:
        # 3列のみ（alias 列なし）の行は alias 空として扱う
        count_str = line[second + 1 :]
        aliases_field = ""
    else:
        count_str = line[second + 1 : third]
        aliases_field = line[third + 1 :]

    # 符号・桁区切り・全角数字は不可（count は 0 以上の整数）
    count_str = count_str.strip()
    if not (count_str.isascii() and count_str.isdigit()):
        return None
    count = int(count_str)

    name = _unquote(line[:first].strip()).strip()
    category = line[first + 1 : second].strip()
    return CsvRow(name=name, category=category, count=count, aliases_field=aliases_field)


def parse_aliases(aliases_field: str) -> list[str]:
    """alias 列を個々の alias に分解する.

    外側のクォートを外してから、クォート外のカンマで分割します。
    各要素は trim し、残ったクォート文字を取り除き、空要素は捨てます。

    Examples:
        >>> parse_aliases('"kitty, feline ,"')
        ['kitty', 'feline']
        >>> parse_aliases("")
        []
    """
    text = _unquote(aliases_field.strip())
    if not text:
        return []

    aliases: list[str] = []
    for part in split_unquoted(text):
        alias = part.strip().strip(_QUOTE).strip()
        if alias:
            aliases.append(alias)
    return aliases


class CSV_Adapter(BaseAdapter):
    """autocomplete 形式のCSVアダプタ.

    Args:
        file_path: CSVファイルのパス
    """

    suffix = ".csv"

    def parse_line(self, line: str) -> list[ProtoTag] | None:
        """1行から主タグと alias の ProtoTag を生成する.

        alias の parent には正規化前の主タグ名をそのまま入れます（正規化はマージ側で一括適用）。
        """
        if not line.strip():
            return []
        row = parse_csv_line(line)
        if row is None:
            return None
        if not row.name:
            return []

        tags = [ProtoTag(row.name, row.count, False, None)]
        for alias in parse_aliases(row.aliases_field):
            tags.append(ProtoTag(alias, row.count, True, row.name))
        return tags
