"""タグDB/翻訳ストアの表形式エクスポート.

TagDatabase や TranslationStore の内容を Polars DataFrame に変換し、Parquet / CSV に出力します。
"""

from __future__ import annotations

from pathlib import Path

import polars as pl
from loguru import logger

from booru_tag_store.core.tag_database import TagDatabase
from booru_tag_store.core.translations import TranslationStore

TAG_SCHEMA = {
    "tag": pl.String,
    "tag_hash": pl.Int64,
    "count": pl.Int64,
    "is_alias": pl.Boolean,
    "parent": pl.String,
    "translation": pl.String,
}

TRANSLATION_SCHEMA = {
    "original": pl.String,
    "translation": pl.String,
    "origin_hash": pl.Int64,
    "is_manual": pl.Boolean,
}


def tags_to_frame(db: TagDatabase) -> pl.DataFrame:
    """TagDatabase を DataFrame に変換する（tags の並び順のまま）."""
    return pl.DataFrame(
        {
            "tag": [t.text for t in db.tags],
            "tag_hash": [t.hash for t in db.tags],
            "count": [t.count for t in db.tags],
            "is_alias": [t.is_alias for t in db.tags],
            "parent": [t.parent for t in db.tags],
            "translation": [t.translation for t in db.tags],
        },
        schema=TAG_SCHEMA,
    )


def translations_to_frame(store: TranslationStore) -> pl.DataFrame:
    """TranslationStore を DataFrame に変換する（ファイル順）."""
    entries = store.entries
    return pl.DataFrame(
        {
            "original": [e.original for e in entries],
            "translation": [e.translation for e in entries],
            "origin_hash": [e.origin_hash for e in entries],
            "is_manual": [e.is_manual for e in entries],
        },
        schema=TRANSLATION_SCHEMA,
    )


def write_frame(df: pl.DataFrame, output_path: Path | str) -> Path:
    """拡張子に応じて Parquet / CSV で出力する.

    Raises:
        ValueError: .parquet / .csv 以外の拡張子の場合
    """
    output_path = Path(output_path)
    suffix = output_path.suffix.lower()
    if suffix not in {".parquet", ".csv"}:
        raise ValueError(f"Unsupported export format: {output_path} (use .parquet or .csv)")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".parquet":
        df.write_parquet(output_path)
    else:
        df.write_csv(output_path)

    logger.info(f"Exported {len(df)} rows → {output_path}")
    return output_path


def export_tags(db: TagDatabase, output_path: Path | str) -> Path:
    return write_frame(tags_to_frame(db), output_path)


def export_translations(store: TranslationStore, output_path: Path | str) -> Path:
    return write_frame(translations_to_frame(store), output_path)
