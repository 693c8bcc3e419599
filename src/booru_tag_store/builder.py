"""タグストアの構築（オーケストレーター）.

起動時の一連の流れをまとめます。

    1. 設定の読み込み
    2. 翻訳ストアの読み込み
    3. 保存済みタグDBの読み込み（なければ新規）
    4. タグソースディレクトリと比較して古ければ再構築し、保存
    5. 翻訳をタグDBへ投影

ここではグローバル状態を持たず、構築したハンドル（TagStore）を呼び出し側に返します。
"""

from __future__ import annotations

import argparse
import sys
import threading
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from booru_tag_store.config import Settings, load_settings
from booru_tag_store.core.tag_database import TagDatabase
from booru_tag_store.core.translations import TranslationStore
from booru_tag_store.export import export_tags, export_translations
from booru_tag_store.providers import TranslationProvider, create_translator

DEFAULT_DB_NAME = "List.tdb"


@dataclass
class TagStore:
    """構築済みのタグDBと翻訳ストアのハンドル."""

    settings: Settings
    tags: TagDatabase
    translations: TranslationStore
    rebuilt: bool = False

    def refresh_translations(self) -> None:
        """翻訳の追加後などに、タグDB側の翻訳投影を更新する."""
        self.tags.load_translation(
            self.translations,
            only_manual=self.settings.only_manual_trans_in_autocomplete,
        )


def create_translation_store(
    settings: Settings,
    translations_dir: Path | str,
    provider: TranslationProvider | None = None,
) -> TranslationStore:
    """設定から翻訳ストアを作成して読み込む."""
    if provider is None and not settings.offline_translation_mode:
        provider = create_translator(settings.translation_service, timeout=settings.translation_timeout)

    store = TranslationStore(
        language=settings.translation_language,
        work_dir=translations_dir,
        provider=provider,
        offline_mode=settings.offline_translation_mode,
        custom_translation_file=settings.translation_file_path or None,
    )
    store.load()
    return store


def rebuild_tag_database(
    db: TagDatabase,
    tags_dir: Path | str,
    fix_tags: bool,
    cancel_event: threading.Event | None = None,
) -> None:
    """タグDBを空にしてタグソースディレクトリから取り込み直す."""
    logger.info(f"Rebuilding tag database from {tags_dir} (fix_tags={fix_tags})")
    db.clear()
    db.clear_loaded_files()
    db.set_fix_tags(fix_tags)
    db.reset_version()
    db.load_csv_from_dir(tags_dir, cancel_event)
    db.load_txt_from_dir(tags_dir, cancel_event)
    db.sort_tags()
    logger.info(f"Tag database rebuilt: {len(db)} tags, {db.malformed_rows} malformed row(s) skipped")


def load_tag_store(
    tags_dir: Path | str,
    translations_dir: Path | str,
    settings: Settings | None = None,
    db_path: Path | str | None = None,
    provider: TranslationProvider | None = None,
    force: bool = False,
    cancel_event: threading.Event | None = None,
) -> TagStore:
    """タグDBと翻訳ストアを読み込み、必要ならタグDBを再構築する.

    Args:
        tags_dir: タグソース（*.csv / *.txt）のディレクトリ（なければ作成）
        translations_dir: 翻訳ファイルのディレクトリ（なければ作成）
        settings: 設定（None の場合は既定値）
        db_path: タグDBの保存先（None の場合は `<tags_dir>/List.tdb`）
        provider: 翻訳プロバイダ（None の場合は設定から生成）
        force: True の場合、更新判定に関わらず再構築する
        cancel_event: 再構築の中断用イベント（ファイルの切れ目で確認）

    Returns:
        TagStore
    """
    settings = settings or Settings()
    tags_dir = Path(tags_dir)
    translations_dir = Path(translations_dir)
    tags_dir.mkdir(parents=True, exist_ok=True)
    translations_dir.mkdir(parents=True, exist_ok=True)
    db_path = Path(db_path) if db_path is not None else tags_dir / DEFAULT_DB_NAME

    translations = create_translation_store(settings, translations_dir, provider)

    db = TagDatabase.load(db_path)
    if db is None:
        db = TagDatabase(fix_tags=settings.fix_tags_on_save_load)
        force = True

    rebuilt = False
    if force or db.is_stale(tags_dir, fix_tags=settings.fix_tags_on_save_load):
        rebuild_tag_database(db, tags_dir, settings.fix_tags_on_save_load, cancel_event)
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Tag database rebuild was cancelled; not saving a partial database")
        else:
            db.save(db_path)
        rebuilt = True
    else:
        logger.info(f"Tag database is up to date: {db_path}")

    store = TagStore(settings=settings, tags=db, translations=translations, rebuilt=rebuilt)
    store.refresh_translations()
    return store


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def main() -> None:
    """CLI エントリポイント."""
    parser = argparse.ArgumentParser(description="Build the tag database and translation overlay")
    parser.add_argument(
        "--tags-dir",
        type=Path,
        required=True,
        help="Directory containing tag sources (*.csv / *.txt)",
    )
    parser.add_argument(
        "--translations-dir",
        type=Path,
        required=True,
        help="Directory containing translation files (<language>.txt)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help=f"Tag database path (default: <tags-dir>/{DEFAULT_DB_NAME})",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Settings YAML file (defaults are used when omitted or missing)",
    )
    parser.add_argument(
        "--export",
        type=Path,
        default=None,
        help="Optional tag export path (.parquet or .csv)",
    )
    parser.add_argument(
        "--export-translations",
        type=Path,
        default=None,
        help="Optional translation export path (.parquet or .csv)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Rebuild the tag database even if it is up to date",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Log level (DEBUG, INFO, WARNING, ...)",
    )

    args = parser.parse_args()
    configure_logging(args.log_level)

    store = load_tag_store(
        tags_dir=args.tags_dir,
        translations_dir=args.translations_dir,
        settings=load_settings(args.settings),
        db_path=args.db,
        force=args.force,
    )

    if args.export is not None:
        export_tags(store.tags, args.export)
    if args.export_translations is not None:
        export_translations(store.translations, args.export_translations)


if __name__ == "__main__":
    main()
