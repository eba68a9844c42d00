"""
Unit tests for src/store/ — models, settings and code documents

Coverage plan
─────────────
models.py    → record dataclasses and their camelCase dict form
settings.py  → save / load with fallback / delete
documents.py → load/save round trip, versioning, skip-if-unchanged,
               history logging options and messages, silent no-ops,
               atomicity of document + history writes, list / delete
db.py        → CodeStore facade open / reopen
"""

import itertools

import pytest

from src.exceptions import TransactionError


START_MS = 1_700_000_000_000


@pytest.fixture
def store(tmp_path):
    """Return a fresh CodeStore with a deterministic, strictly increasing clock."""
    from src.store.db import CodeStore
    clock = itertools.count(START_MS, 1000).__next__
    s = CodeStore(db_path=str(tmp_path / "test.db"), clock=clock)
    yield s
    s.close()


def _history_count(store) -> int:
    return len(store.get_all("history"))


# ─────────────────────────────────────────────────────────────────────────────
# 1. Models
# ─────────────────────────────────────────────────────────────────────────────

class TestModels:

    def test_code_record_id_is_lang_and_filename(self):
        from src.store.models import CodeRecord
        rec = CodeRecord(lang="js", filename="a", code="x")
        assert rec.id == "js:a"

    def test_code_record_dict_uses_camel_case(self):
        from src.store.models import CodeRecord
        d = CodeRecord(lang="js", filename="a", code="x", updated_at=5).to_dict()
        assert d["id"] == "js:a"
        assert d["updatedAt"] == 5
        assert CodeRecord.from_dict(d).updated_at == 5

    def test_history_entry_is_immutable(self):
        from dataclasses import FrozenInstanceError
        from src.store.models import HistoryEntry
        entry = HistoryEntry(
            lang="js", filename="a", version=1, code="x",
            message="Saved", timestamp=1, size=1, lines=1,
        )
        with pytest.raises(FrozenInstanceError):
            entry.code = "y"

    def test_history_entry_dict_omits_unassigned_id(self):
        from src.store.models import HistoryEntry
        entry = HistoryEntry(
            lang="js", filename="a", version=1, code="x",
            message="Saved", timestamp=1, size=1, lines=1,
        )
        assert "id" not in entry.to_dict()

    def test_snippet_defaults(self):
        from src.store.models import Snippet
        s = Snippet(lang="py", name="loop", code="for x in y: pass")
        assert s.usage_count == 0
        assert s.tags == []
        assert s.id is None

    def test_from_dict_tolerates_missing_lang_and_filename(self):
        from src.store.models import CodeRecord, HistoryEntry
        rec = CodeRecord.from_dict({"code": "x"})
        assert (rec.lang, rec.filename) == ("", "")
        entry = HistoryEntry.from_dict({"id": 1, "lang": "js", "code": "x"})
        assert entry.filename == ""
        assert entry.size == 1

    @pytest.mark.parametrize("code, lines", [("", 0), ("a", 1), ("a\nb", 2), ("a\n", 2)])
    def test_count_lines(self, code, lines):
        from src.store.models import count_lines
        assert count_lines(code) == lines


# ─────────────────────────────────────────────────────────────────────────────
# 2. Settings
# ─────────────────────────────────────────────────────────────────────────────

class TestSettings:

    def test_save_then_load(self, store):
        assert store.save_setting("theme", "dark") is True
        assert store.load_setting("theme") == "dark"

    def test_structured_values_round_trip(self, store):
        value = {"fontSize": 14, "rulers": [80, 120], "wrap": False}
        store.save_setting("editor", value)
        assert store.load_setting("editor") == value

    def test_missing_key_returns_fallback(self, store):
        assert store.load_setting("nope", fallback=42) == 42

    def test_stored_none_is_not_the_fallback(self, store):
        store.save_setting("k", None)
        assert store.load_setting("k", fallback="x") is None

    def test_delete(self, store):
        store.save_setting("k", 1)
        assert store.delete_setting("k") is True
        assert store.load_setting("k") is None


# ─────────────────────────────────────────────────────────────────────────────
# 3. Code documents
# ─────────────────────────────────────────────────────────────────────────────

class TestLoadCode:

    def test_save_then_load_returns_exact_code(self, store):
        code = "def f():\n\treturn 'ünïcode'\n"
        store.save_code("python", code, filename="mod")
        assert store.load_code("python", "mod") == code

    def test_missing_document_loads_as_empty_string(self, store):
        assert store.load_code("python", "nothing") == ""

    def test_empty_lang_or_filename_returns_none(self, store):
        assert store.load_code("", "main") is None
        assert store.load_code("python", "") is None

    def test_default_filename_is_main(self, store):
        store.save_code("python", "x = 1")
        assert store.load_code("python", "main") == "x = 1"


class TestSaveCode:

    def test_first_save_is_version_one(self, store):
        rec = store.save_code("js", "print(1)", filename="a")
        assert rec.id == "js:a"
        assert rec.version == 1
        assert rec.code == "print(1)"
        assert rec.updated_at == START_MS

    def test_changed_code_bumps_version(self, store):
        store.save_code("js", "print(1)", filename="a")
        rec = store.save_code("js", "print(2)", filename="a")
        assert rec.version == 2
        assert store.load_code_record("js", "a").version == 2

    def test_identical_code_is_skipped(self, store):
        first = store.save_code("js", "print(1)", filename="a")
        again = store.save_code("js", "print(1)", filename="a")
        assert again.version == 1
        assert again.updated_at == first.updated_at
        assert _history_count(store) == 1

    def test_skip_disabled_always_bumps(self, store):
        store.save_code("js", "print(1)", filename="a")
        rec = store.save_code("js", "print(1)", filename="a", skip_if_unchanged=False)
        assert rec.version == 2
        assert _history_count(store) == 2

    def test_versions_are_per_document(self, store):
        store.save_code("js", "1", filename="a")
        store.save_code("js", "2", filename="a")
        rec = store.save_code("js", "1", filename="b")
        other = store.save_code("py", "1", filename="a")
        assert rec.version == 1
        assert other.version == 1

    def test_record_carries_author_and_description(self, store):
        rec = store.save_code("js", "x", author="ana", description="init")
        stored = store.load_code_record("js", "main")
        assert (rec.author, rec.description) == ("ana", "init")
        assert (stored.author, stored.description) == ("ana", "init")

    def test_empty_lang_is_a_silent_no_op(self, store):
        assert store.save_code("", "x") is None
        assert store.get_stats()["code"]["count"] == 0

    def test_empty_code_is_saved(self, store):
        rec = store.save_code("js", "")
        assert rec.version == 1
        assert store.load_code("js", "main") == ""


class TestSaveCodeHistory:

    def test_save_appends_snapshot_of_the_save(self, store):
        store.save_code("js", "a\nb", filename="f")
        (entry,) = store.get_history("js", "f")
        assert entry.version == 1
        assert entry.code == "a\nb"
        assert entry.size == 3
        assert entry.lines == 2
        assert entry.timestamp == START_MS

    def test_save_history_false_writes_no_entry(self, store):
        rec = store.save_code("js", "x", save_history=False)
        assert rec.version == 1
        assert _history_count(store) == 0

    @pytest.mark.parametrize(
        "options, expected",
        [
            ({"message": "fix bug", "description": "desc"}, "fix bug"),
            ({"description": "desc"}, "desc"),
            ({"auto": True}, "Auto-save"),
            ({}, "Saved"),
        ],
    )
    def test_history_message_fallbacks(self, store, options, expected):
        store.save_code("js", "x", **options)
        assert store.get_history("js", "main")[0].message == expected

    def test_failed_history_write_leaves_document_untouched(self, store, monkeypatch):
        from src.engine.db import Transaction
        store.save_code("js", "print(1)", filename="a")

        def _fail(self, collection, record):
            raise TransactionError("disk full")

        monkeypatch.setattr(Transaction, "add", _fail)
        with pytest.raises(TransactionError):
            store.save_code("js", "print(2)", filename="a")

        monkeypatch.undo()
        rec = store.load_code_record("js", "a")
        assert rec.code == "print(1)"
        assert rec.version == 1
        assert _history_count(store) == 1


class TestDocumentListing:

    def test_list_documents_by_language(self, store):
        store.save_code("js", "1", filename="b")
        store.save_code("js", "2", filename="a")
        store.save_code("py", "3", filename="a")
        docs = store.list_documents("js")
        assert [d.filename for d in docs] == ["a", "b"]

    def test_delete_code_keeps_history(self, store):
        store.save_code("js", "1", filename="a")
        assert store.delete_code("js", "a") is True
        assert store.delete_code("js", "a") is False
        assert store.load_code("js", "a") == ""
        assert len(store.get_history("js", "a")) == 1

    def test_save_after_delete_restarts_at_version_one(self, store):
        store.save_code("js", "1", filename="a")
        store.save_code("js", "2", filename="a")
        store.delete_code("js", "a")
        assert store.save_code("js", "3", filename="a").version == 1


# ─────────────────────────────────────────────────────────────────────────────
# 4. Facade lifecycle
# ─────────────────────────────────────────────────────────────────────────────

class TestCodeStoreLifecycle:

    def test_data_survives_reopen(self, tmp_path):
        from src.store.db import CodeStore
        path = str(tmp_path / "persist.db")
        with CodeStore(db_path=path) as first:
            first.save_code("js", "kept", filename="a")
        with CodeStore(db_path=path) as second:
            assert second.load_code("js", "a") == "kept"

    def test_name_and_version(self, tmp_path):
        from src.store.db import CodeStore
        with CodeStore(db_path=str(tmp_path / "n.db"), name="Scratch", version=2) as s:
            assert s.name == "Scratch"
            assert s.version == 2

    def test_explicit_arguments_do_not_mutate_passed_config(self, tmp_path):
        from src.store.config import StoreConfig
        from src.store.db import CodeStore
        config = StoreConfig(db_path=str(tmp_path / "base.db"))
        with CodeStore(db_path=str(tmp_path / "other.db"), name="Scratch", config=config) as s:
            assert s.name == "Scratch"
            assert s.config.db_path == str(tmp_path / "other.db")
        assert config.db_path == str(tmp_path / "base.db")
        assert config.name == "CodeIDE"

    def test_db_path_from_environment(self, tmp_path, monkeypatch):
        from src.store.db import CodeStore
        path = tmp_path / "env" / "store.db"
        monkeypatch.setenv("CODEIDE_DB", str(path))
        with CodeStore() as s:
            s.save_setting("k", 1)
        assert path.exists()

    def test_clear_single_collection(self, store):
        store.save_code("js", "1")
        store.save_setting("k", 1)
        assert store.clear("code") is True
        assert store.get_all("code") == []
        assert store.load_setting("k") == 1
