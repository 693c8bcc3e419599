"""booru-tag-store: ハッシュ索引付きタグDBと翻訳ストア."""

from booru_tag_store.core.tag_database import CURRENT_VERSION, TagDatabase, TagRecord
from booru_tag_store.core.translations import TranslationEntry, TranslationStore

__version__ = "0.1.0"

__all__ = [
    "CURRENT_VERSION",
    "TagDatabase",
    "TagRecord",
    "TranslationEntry",
    "TranslationStore",
]
