"""タグストアのコア処理群.

- 正規化とハッシュ（タグ同一性 / ファイル変更検出）
- バッチ構築（正規化、バッチ内重複の畳み込み）
- タグDB / 翻訳ストア本体は tag_database / translations を参照
"""

from .merge import ProtoTag, build_scratch_batch
from .normalize import file_checksum, normalize_tag, normalize_text, text_hash

__all__ = [
    "ProtoTag",
    "build_scratch_batch",
    "file_checksum",
    "normalize_tag",
    "normalize_text",
    "text_hash",
]
