"""タグのバッチ構築（マージ前処理）.

- アダプタが出力した ProtoTag（正規化前）を正規化・ハッシュ化する
- バッチ内の重複を畳み込む（count は合算、alias/parent は先勝ち）

ここはロック外で実行する前処理です。共有インデックスへの反映は
`TagDatabase.merge_batch()` がロック内で行います。
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import NamedTuple

from .normalize import normalize_tag, text_hash


class ProtoTag(NamedTuple):
    """アダプタが1行から生成する正規化前のタグ.

    parent は alias の場合のみ設定され、元表記（正規化前）のタグ名を保持します。
    """

    text: str
    count: int = 0
    is_alias: bool = False
    parent: str | None = None


@dataclass
class ScratchTag:
    """正規化・ハッシュ化済みのバッチ要素."""

    text: str
    hash: int
    count: int
    is_alias: bool
    parent: str | None


def build_scratch_batch(proto_tags: Iterable[ProtoTag], fix_tags: bool) -> list[ScratchTag]:
    """ProtoTag 列から重複除去済みのバッチを作る.

    Args:
        proto_tags: アダプタ出力（1ファイル分、または複数ファイル分）
        fix_tags: fix tags モード（タグと alias の parent の両方に適用）

    Returns:
        初出順の ScratchTag リスト（空白タグは除外）

    Examples:
        >>> batch = build_scratch_batch([ProtoTag("Cat", 2), ProtoTag("cat", 3)], fix_tags=False)
        >>> [(t.text, t.count) for t in batch]
        [('cat', 5)]
    """
    batch: list[ScratchTag] = []
    positions: dict[int, int] = {}

    for proto in proto_tags:
        text = normalize_tag(proto.text, fix_tags)
        if not text.strip():
            continue

        h = text_hash(text)
        pos = positions.get(h)
        if pos is not None:
            # 同一バッチ内の重複: count のみ合算（alias/parent は先勝ち）
            batch[pos].count += proto.count
            continue

        parent = normalize_tag(proto.parent, fix_tags) if proto.is_alias and proto.parent else None
        positions[h] = len(batch)
        batch.append(
            ScratchTag(
                text=text,
                hash=h,
                count=proto.count,
                is_alias=proto.is_alias,
                parent=parent or None,
            )
        )

    return batch
