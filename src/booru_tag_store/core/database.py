"""タグDBの保存/読み込み（SQLite）.

TagDatabase をバージョン付きの SQLite ファイルとして保存します。

方針:
    - 保存は同じディレクトリの一時ファイルに書き出してから置き換える（書きかけのファイルを残さない）
    - 読み込みはどんな失敗でも None を返す（部分的なオブジェクトは返さない）
    - version / fix_tags は DATABASE_METADATA に保存し、判定は呼び出し側（is_stale）で行う
"""

from __future__ import annotations

import os
import sqlite3
from pathlib import Path

from loguru import logger

from .exceptions import CorruptTagDatabaseError
from .normalize import text_hash
from .tag_database import TagDatabase, TagRecord

# 保存用の一時ファイルは書き捨てなので、ジャーナル/同期は不要
SAVE_PRAGMAS = [
    "PRAGMA journal_mode = OFF;",
    "PRAGMA synchronous = OFF;",
]

SCHEMA_SQL = [
    """
    CREATE TABLE IF NOT EXISTS DATABASE_METADATA (
        key TEXT NOT NULL PRIMARY KEY,
        value TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS TAGS (
        position INTEGER NOT NULL PRIMARY KEY,
        tag TEXT NOT NULL,
        tag_hash INTEGER NOT NULL,
        count INTEGER NOT NULL,
        is_alias BOOLEAN NOT NULL,
        parent TEXT NULL,
        translation TEXT NULL,
        UNIQUE(tag_hash)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS LOADED_FILES (
        file_name TEXT NOT NULL PRIMARY KEY,
        checksum INTEGER NOT NULL
    );
    """,
]


def save_tag_database(db: TagDatabase, db_path: Path | str) -> None:
    """TagDatabase を SQLite ファイルに保存する.

    Args:
        db: 保存対象
        db_path: 保存先ファイルパス（既存ファイルは置き換える）

    Raises:
        OSError / sqlite3.Error: 書き込みに失敗した場合
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = db_path.with_name(f"{db_path.name}.tmp")
    if tmp_path.exists():
        tmp_path.unlink()

    logger.info(f"Saving tag database: {db_path} ({len(db.tags)} tags, {len(db.loaded_files)} files)")

    conn = sqlite3.connect(tmp_path)
    try:
        for pragma in SAVE_PRAGMAS:
            conn.execute(pragma)
        for stmt in SCHEMA_SQL:
            conn.executescript(stmt)

        conn.executemany(
            "INSERT INTO DATABASE_METADATA (key, value) VALUES (?, ?)",
            [("version", str(db.version)), ("fix_tags", "1" if db.fix_tags else "0")],
        )
        conn.executemany(
            "INSERT INTO TAGS (position, tag, tag_hash, count, is_alias, parent, translation) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                (i, t.text, t.hash, t.count, int(t.is_alias), t.parent, t.translation)
                for i, t in enumerate(db.tags)
            ),
        )
        conn.executemany(
            "INSERT INTO LOADED_FILES (file_name, checksum) VALUES (?, ?)",
            sorted(db.loaded_files.items()),
        )
        conn.commit()
    except Exception as e:
        logger.error(f"Failed to save tag database: {e}")
        conn.close()
        tmp_path.unlink(missing_ok=True)
        raise
    else:
        conn.close()

    os.replace(tmp_path, db_path)
    logger.info("Tag database saved")


def _read_tag_database(db_path: Path) -> TagDatabase:
    """SQLite から TagDatabase を復元する（不整合は CorruptTagDatabaseError）."""
    # 存在しないファイルを connect すると空DBが作られてしまうため、読み取り専用URIで開く
    conn = sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True)
    try:
        metadata = dict(conn.execute("SELECT key, value FROM DATABASE_METADATA").fetchall())
        if "version" not in metadata or "fix_tags" not in metadata:
            raise CorruptTagDatabaseError(str(db_path), "missing version/fix_tags metadata")

        try:
            version = int(metadata["version"])
        except ValueError as e:
            raise CorruptTagDatabaseError(str(db_path), f"invalid version {metadata['version']!r}") from e

        db = TagDatabase(fix_tags=metadata["fix_tags"] == "1")
        db.version = version

        rows = conn.execute(
            "SELECT tag, tag_hash, count, is_alias, parent, translation FROM TAGS ORDER BY position"
        ).fetchall()
        for tag, tag_hash, count, is_alias, parent, translation in rows:
            if tag_hash != text_hash(tag):
                raise CorruptTagDatabaseError(str(db_path), f"tag hash does not match text for {tag!r}")
            if count < 0:
                raise CorruptTagDatabaseError(str(db_path), f"negative count for {tag!r}")
            if tag_hash in db.hashes:
                raise CorruptTagDatabaseError(str(db_path), f"duplicate tag hash for {tag!r}")
            db.hashes[tag_hash] = len(db.tags)
            db.tags.append(
                TagRecord(
                    text=tag,
                    hash=tag_hash,
                    count=int(count),
                    is_alias=bool(is_alias),
                    parent=parent,
                    translation=translation,
                )
            )

        db.loaded_files = {
            name: int(checksum)
            for name, checksum in conn.execute("SELECT file_name, checksum FROM LOADED_FILES")
        }
        return db
    finally:
        conn.close()


def load_tag_database(db_path: Path | str) -> TagDatabase | None:
    """保存済み TagDatabase を読み込む.

    Args:
        db_path: DBファイルパス

    Returns:
        復元した TagDatabase。ファイルがない・壊れている等、どんな失敗でも None
    """
    db_path = Path(db_path)
    if not db_path.is_file():
        logger.info(f"Tag database not found, starting fresh: {db_path}")
        return None

    try:
        db = _read_tag_database(db_path)
    except Exception as e:
        logger.warning(f"Failed to load tag database {db_path}: {e}")
        return None

    logger.info(f"Loaded tag database: {db_path} (version={db.version}, tags={len(db.tags)})")
    return db
