"""Unit tests for TagDatabase (file import, ledger, staleness, projection)."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from booru_tag_store.core.exceptions import UnsupportedTagSourceError
from booru_tag_store.core.merge import ProtoTag
from booru_tag_store.core.normalize import file_checksum, text_hash
from booru_tag_store.core.tag_database import CURRENT_VERSION, TagDatabase, TagRecord
from booru_tag_store.core.translations import TranslationStore

CAT_ROW = 'cat,5,5,"kitty,feline"\n'


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def assert_hash_bijection(db: TagDatabase) -> None:
    assert len(db.hashes) == len(db.tags)
    for h, pos in db.hashes.items():
        assert db.tags[pos].hash == h == text_hash(db.tags[pos].text)


class TestLoadFiles:
    def test_csv_example(self, tmp_path: Path) -> None:
        """cat,5,5,"kitty,feline" から3レコード."""
        db = TagDatabase()
        db.load_csv_file(_write(tmp_path / "a.csv", CAT_ROW))

        assert len(db) == 3
        assert (db.get("cat").count, db.get("cat").is_alias) == (5, False)
        for alias in ("kitty", "feline"):
            record = db.get(alias)
            assert record.count == 5
            assert record.is_alias is True
            assert record.parent == "cat"
            assert record.get_tag() == "cat"
        assert_hash_bijection(db)

    def test_reloading_unchanged_file_is_noop(self, tmp_path: Path) -> None:
        p = _write(tmp_path / "a.csv", CAT_ROW)
        db = TagDatabase()
        db.load_csv_file(p)
        db.load_csv_file(p)

        assert len(db) == 3
        assert db.get("cat").count == 5
        assert db.loaded_files == {"a.csv": file_checksum(p.read_bytes())}

    def test_changed_file_is_reprocessed(self, tmp_path: Path) -> None:
        """内容が変わったファイルは再処理され、台帳も更新される（count は加算）."""
        p = _write(tmp_path / "a.csv", CAT_ROW)
        db = TagDatabase()
        db.load_csv_file(p)

        _write(p, CAT_ROW + "dog,0,7,\n")
        db.load_csv_file(p)

        assert db.get("dog").count == 7
        assert db.get("cat").count == 10
        assert db.loaded_files["a.csv"] == file_checksum(p.read_bytes())

    def test_empty_file_is_recorded_in_ledger(self, tmp_path: Path) -> None:
        p = _write(tmp_path / "empty.txt", "")
        db = TagDatabase()
        db.load_txt_file(p)

        assert len(db) == 0
        assert "empty.txt" in db.loaded_files

    def test_append_false_replaces_tags(self, tmp_path: Path) -> None:
        db = TagDatabase()
        db.load_csv_file(_write(tmp_path / "a.csv", CAT_ROW))
        db.load_txt_file(_write(tmp_path / "b.txt", "dog\n"), append=False)

        assert [t.text for t in db.tags] == ["dog"]
        assert_hash_bijection(db)

    def test_txt_tags_have_zero_count(self, tmp_path: Path) -> None:
        db = TagDatabase()
        db.load_txt_file(_write(tmp_path / "list.txt", "Cat\ncat\ndog\n"))

        assert len(db) == 2
        assert db.get("cat").count == 0

    def test_fix_tags_mode(self, tmp_path: Path) -> None:
        db = TagDatabase(fix_tags=True)
        db.load_csv_file(_write(tmp_path / "a.csv", 'Long_Hair,0,3,"longer_hair,very_long"\n'))

        assert sorted(t.text for t in db.tags) == ["long hair", "longer hair", "very long"]
        assert db.get("longer_hair").parent == "long hair"
        assert "long_hair" in db

    def test_malformed_rows_are_counted(self, tmp_path: Path) -> None:
        db = TagDatabase()
        db.load_csv_file(_write(tmp_path / "a.csv", "cat,0,1,\nbroken\ndog,0,x,\nbird,0,-5,\n"))

        assert len(db) == 1
        assert db.get("bird") is None
        assert db.malformed_rows == 3

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            TagDatabase().load_csv_file(tmp_path / "missing.csv")

    def test_load_tag_file_dispatches_by_suffix(self, tmp_path: Path) -> None:
        db = TagDatabase()
        db.load_tag_file(_write(tmp_path / "a.CSV", CAT_ROW))
        db.load_tag_file(_write(tmp_path / "b.txt", "dog\n"))
        assert len(db) == 4

    def test_load_tag_file_rejects_unknown_suffix(self, tmp_path: Path) -> None:
        p = _write(tmp_path / "tags.json", "[]")
        with pytest.raises(UnsupportedTagSourceError) as exc_info:
            TagDatabase().load_tag_file(p)
        assert exc_info.value.file_path == str(p)


class TestLoadFromDir:
    def test_files_are_visited_in_name_order(self, tmp_path: Path) -> None:
        for name in ("c.csv", "a.csv", "b.csv"):
            _write(tmp_path / name, f"{name[0]}_tag,0,1,\n")
        _write(tmp_path / "ignored.txt", "dog\n")

        db = TagDatabase()
        db.load_csv_from_dir(tmp_path)

        # 台帳の挿入順 = 処理順
        assert list(db.loaded_files) == ["a.csv", "b.csv", "c.csv"]
        assert [t.text for t in db.tags] == ["a_tag", "b_tag", "c_tag"]

    def test_txt_dir_only_reads_txt(self, tmp_path: Path) -> None:
        _write(tmp_path / "a.csv", CAT_ROW)
        _write(tmp_path / "b.txt", "dog\n")

        db = TagDatabase()
        db.load_txt_from_dir(tmp_path)

        assert list(db.loaded_files) == ["b.txt"]
        assert [t.text for t in db.tags] == ["dog"]

    def test_subdirectories_are_ignored(self, tmp_path: Path) -> None:
        sub = tmp_path / "nested"
        sub.mkdir()
        _write(sub / "x.csv", CAT_ROW)

        db = TagDatabase()
        db.load_csv_from_dir(tmp_path)
        assert len(db) == 0

    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            TagDatabase().load_csv_from_dir(tmp_path / "missing")

    def test_cancel_between_files(self, tmp_path: Path) -> None:
        _write(tmp_path / "a.csv", CAT_ROW)
        cancel = threading.Event()
        cancel.set()

        db = TagDatabase()
        db.load_csv_from_dir(tmp_path, cancel_event=cancel)

        assert len(db) == 0
        assert db.loaded_files == {}


class TestIsStale:
    def test_fresh_database_with_files_is_stale(self, tmp_path: Path) -> None:
        _write(tmp_path / "a.csv", CAT_ROW)
        assert TagDatabase().is_stale(tmp_path, fix_tags=False) is True

    def test_up_to_date_after_import(self, tmp_path: Path) -> None:
        _write(tmp_path / "a.csv", CAT_ROW)
        _write(tmp_path / "b.txt", "dog\n")
        db = TagDatabase()
        db.load_csv_from_dir(tmp_path)
        db.load_txt_from_dir(tmp_path)

        assert db.is_stale(tmp_path, fix_tags=False) is False

    def test_fix_tags_change_makes_stale(self, tmp_path: Path) -> None:
        """ソースが同一でも fix tags 設定が変われば再構築対象."""
        _write(tmp_path / "a.csv", CAT_ROW)
        db = TagDatabase(fix_tags=False)
        db.load_csv_from_dir(tmp_path)

        assert db.is_stale(tmp_path, fix_tags=False) is False
        assert db.is_stale(tmp_path, fix_tags=True) is True

    def test_version_mismatch_makes_stale(self, tmp_path: Path) -> None:
        db = TagDatabase()
        db.version = CURRENT_VERSION - 1
        assert db.is_stale(tmp_path, fix_tags=False) is True

    def test_modified_file_makes_stale_without_touching_ledger(self, tmp_path: Path) -> None:
        p = _write(tmp_path / "a.csv", CAT_ROW)
        db = TagDatabase()
        db.load_csv_from_dir(tmp_path)
        ledger = dict(db.loaded_files)

        _write(p, CAT_ROW + "dog,0,1,\n")

        assert db.is_stale(tmp_path, fix_tags=False) is True
        assert db.loaded_files == ledger

    def test_new_file_makes_stale(self, tmp_path: Path) -> None:
        _write(tmp_path / "a.csv", CAT_ROW)
        db = TagDatabase()
        db.load_csv_from_dir(tmp_path)

        _write(tmp_path / "b.txt", "dog\n")
        assert db.is_stale(tmp_path, fix_tags=False) is True

    def test_empty_directory_is_not_stale(self, tmp_path: Path) -> None:
        assert TagDatabase().is_stale(tmp_path, fix_tags=False) is False


class TestTagRecord:
    def test_str(self) -> None:
        tag = TagRecord(text="cat", hash=1, count=5, translation="猫")
        alias = TagRecord(text="kitty", hash=2, count=5, is_alias=True, parent="cat")
        assert str(tag) == "cat (5) [猫]"
        assert str(alias) == "kitty -> cat (5)"

    def test_sort_tags_rebuilds_index(self) -> None:
        db = TagDatabase()
        db.merge_batch([ProtoTag("zebra"), ProtoTag("apple"), ProtoTag("mango")])
        db.sort_tags()

        assert [t.text for t in db.tags] == ["apple", "mango", "zebra"]
        assert db.get("zebra").text == "zebra"
        assert_hash_bijection(db)


class TestLoadTranslation:
    def _store(self, tmp_path: Path) -> TranslationStore:
        trans_dir = tmp_path / "trans"
        trans_dir.mkdir()
        _write(trans_dir / "ja.txt", "*cat=猫\nkitty=子猫\n")
        store = TranslationStore("ja", trans_dir, offline_mode=True)
        store.load()
        return store

    def test_projection(self, tmp_path: Path) -> None:
        db = TagDatabase()
        db.load_csv_file(_write(tmp_path / "a.csv", CAT_ROW))
        db.load_translation(self._store(tmp_path))

        assert db.get("cat").translation == "猫"
        assert db.get("kitty").translation == "子猫"
        assert db.get("feline").translation is None

    def test_only_manual_projection(self, tmp_path: Path) -> None:
        db = TagDatabase()
        db.load_csv_file(_write(tmp_path / "a.csv", CAT_ROW))
        store = self._store(tmp_path)

        db.load_translation(store)
        db.load_translation(store, only_manual=True)

        assert db.get("cat").translation == "猫"
        # 自動翻訳しかないタグは None に戻る
        assert db.get("kitty").translation is None
