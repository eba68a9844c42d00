"""
Unit tests for src/cli/

Coverage plan
─────────────
arg parsing → subcommands and their defaults
commands    → show / save / history / restore / snippets / export /
              import / stats, called directly
main()      → exit codes end to end
"""

import json

import pytest


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _parse(args: list[str]):
    """Call the CLI argument parser and return the parsed namespace."""
    from src.cli.main import build_parser
    parser = build_parser()
    return parser.parse_args(args)


@pytest.fixture
def store(tmp_path):
    """Fresh CodeStore for CLI command tests."""
    from src.store.db import CodeStore
    s = CodeStore(db_path=str(tmp_path / "cli_test.db"))
    yield s
    s.close()


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "hello.py"
    path.write_text("print('hello')\n", encoding="utf-8")
    return path


# ─────────────────────────────────────────────────────────────────────────────
# 1. Argument parsing
# ─────────────────────────────────────────────────────────────────────────────

class TestArgParsing:

    def test_show_defaults_to_main(self):
        ns = _parse(["show", "python"])
        assert ns.subcommand == "show"
        assert ns.lang == "python"
        assert ns.file == "main"

    def test_save_flags(self):
        ns = _parse(["save", "python", "a.py", "--file", "a", "--message", "m", "--force"])
        assert ns.source == "a.py"
        assert ns.file == "a"
        assert ns.message == "m"
        assert ns.force is True
        assert ns.no_history is False

    def test_history_defaults(self):
        ns = _parse(["history", "python"])
        assert ns.file is None
        assert ns.limit == 50

    def test_restore_parses_integer_id(self):
        ns = _parse(["restore", "42"])
        assert ns.id == 42

    def test_db_flag(self):
        ns = _parse(["--db", "/tmp/x.db", "stats"])
        assert ns.db == "/tmp/x.db"


# ─────────────────────────────────────────────────────────────────────────────
# 2. Commands
# ─────────────────────────────────────────────────────────────────────────────

class TestDocumentCommands:

    def test_save_then_show(self, store, source, capsys):
        from src.cli.main import cmd_save, cmd_show
        record = cmd_save(store, "python", str(source), filename="hello")
        assert record.version == 1
        cmd_show(store, "python", "hello")
        out = capsys.readouterr().out
        assert "python:hello v1" in out
        assert "print('hello')" in out

    def test_save_unchanged_keeps_version_unless_forced(self, store, source):
        from src.cli.main import cmd_save
        cmd_save(store, "python", str(source))
        assert cmd_save(store, "python", str(source)).version == 1
        assert cmd_save(store, "python", str(source), force=True).version == 2

    def test_save_missing_source_raises(self, store, tmp_path):
        from src.cli.main import cmd_save
        with pytest.raises(OSError):
            cmd_save(store, "python", str(tmp_path / "missing.py"))

    def test_history_lists_newest_first(self, store, capsys):
        from src.cli.main import cmd_history
        store.save_code("python", "1", filename="a", message="first")
        store.save_code("python", "2", filename="a", message="second")
        entries = cmd_history(store, "python", "a", 10)
        out = capsys.readouterr().out
        assert [e.version for e in entries] == [2, 1]
        assert out.index("second") < out.index("first")

    def test_history_empty(self, store, capsys):
        from src.cli.main import cmd_history
        cmd_history(store, "python", None, 10)
        assert "0 history entries" in capsys.readouterr().out

    def test_restore(self, store, capsys):
        from src.cli.main import cmd_restore
        store.save_code("python", "1", filename="a")
        store.save_code("python", "2", filename="a")
        oldest = store.get_history("python", "a")[-1]
        cmd_restore(store, oldest.id)
        assert store.load_code("python", "a") == "1"
        assert "v3" in capsys.readouterr().out

    def test_restore_invalid_id_raises(self, store):
        from src.cli.main import cmd_restore
        with pytest.raises(ValueError):
            cmd_restore(store, 9999)


class TestSnippetCommand:

    def test_lists_snippets(self, store, capsys):
        from src.cli.main import cmd_snippets
        store.save_snippet("python", "loop", "for x in y: pass", ["basics"])
        cmd_snippets(store, "python")
        out = capsys.readouterr().out
        assert "loop" in out
        assert "basics" in out

    def test_empty(self, store, capsys):
        from src.cli.main import cmd_snippets
        cmd_snippets(store, "python")
        assert "0 snippets" in capsys.readouterr().out


class TestTransferCommands:

    def test_export_writes_json(self, store, tmp_path):
        from src.cli.main import cmd_export
        store.save_code("python", "x = 1")
        out_path = cmd_export(store, str(tmp_path / "backup.json"))
        data = json.loads(out_path.read_text(encoding="utf-8"))
        assert data["code"][0]["id"] == "python:main"
        assert data["meta"]["storeName"] == "CodeIDE"

    def test_import_restores_export(self, store, tmp_path, capsys):
        from src.cli.main import cmd_export, cmd_import
        store.save_code("python", "x = 1")
        path = cmd_export(store, str(tmp_path / "backup.json"))
        store.save_code("python", "x = 2")
        cmd_import(store, str(path))
        assert store.load_code("python", "main") == "x = 1"
        assert "1 documents" in capsys.readouterr().out

    def test_stats(self, store, capsys):
        from src.cli.main import cmd_stats
        store.save_code("python", "abc")
        counts = cmd_stats(store)
        assert counts["code"]["count"] == 1
        assert "history" in capsys.readouterr().out


# ─────────────────────────────────────────────────────────────────────────────
# 3. main()
# ─────────────────────────────────────────────────────────────────────────────

class TestMain:

    def test_no_subcommand_prints_help(self, tmp_path, capsys):
        from src.cli.main import main
        assert main(["--db", str(tmp_path / "m.db")]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_save_and_history_round_trip(self, tmp_path, source, capsys):
        from src.cli.main import main
        db = str(tmp_path / "m.db")
        assert main(["--db", db, "save", "python", str(source), "--message", "hi"]) == 0
        assert main(["--db", db, "history", "python"]) == 0
        assert "hi" in capsys.readouterr().out

    def test_restore_unknown_id_exits_1(self, tmp_path, capsys):
        from src.cli.main import main
        assert main(["--db", str(tmp_path / "m.db"), "restore", "77"]) == 1
        assert "Error" in capsys.readouterr().err

    def test_import_invalid_file_exits_1(self, tmp_path):
        from src.cli.main import main
        bad = tmp_path / "bad.json"
        bad.write_text("[]", encoding="utf-8")
        assert main(["--db", str(tmp_path / "m.db"), "import", str(bad)]) == 1
