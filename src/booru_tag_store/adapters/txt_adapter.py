"""TXT読み込みアダプタ（タグ一覧）.

1行1タグのテキストを読み込みます。空行は無視します。
使用回数と alias 情報は持たないため、count は 0、alias なしとして扱います。
"""

from __future__ import annotations

from booru_tag_store.core.merge import ProtoTag

from .base_adapter import BaseAdapter


class TXT_Adapter(BaseAdapter):
    """改行区切りのタグ一覧アダプタ.

    Args:
        file_path: TXTファイルのパス
    """

    suffix = ".txt"

    def parse_line(self, line: str) -> list[ProtoTag] | None:
        """1行を1タグとして解析する（空行は何も生成しない）."""
        tag = line.strip()
        if not tag:
            return []
        return [ProtoTag(tag)]
