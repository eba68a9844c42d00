"""
Unit tests for src/store/aio.py

Coverage plan
─────────────
AsyncCodeStore → open/close, save/load/history/restore as coroutines,
                 concurrent awaits keep counters exact, errors surface
                 from the awaited call
"""

import asyncio

import pytest

from src.exceptions import InvalidInputError


def test_save_load_and_history(tmp_path):
    from src.store.aio import AsyncCodeStore

    async def scenario():
        async with await AsyncCodeStore.open(str(tmp_path / "aio.db")) as store:
            await store.save_code("js", "print(1)", filename="a")
            rec = await store.save_code("js", "print(2)", filename="a")
            code = await store.load_code("js", "a")
            entries = await store.get_history("js", "a", 10)
            return rec, code, entries

    rec, code, entries = asyncio.run(scenario())
    assert rec.version == 2
    assert code == "print(2)"
    assert [e.version for e in entries] == [2, 1]


def test_restore(tmp_path):
    from src.store.aio import AsyncCodeStore

    async def scenario():
        store = await AsyncCodeStore.open(str(tmp_path / "aio.db"))
        try:
            await store.save_code("js", "one", filename="a")
            await store.save_code("js", "two", filename="a")
            oldest = (await store.get_history("js", "a"))[-1]
            await store.restore_from_history(oldest.id)
            return await store.load_code("js", "a"), await store.get_stats()
        finally:
            await store.close()

    code, stats = asyncio.run(scenario())
    assert code == "one"
    assert stats["history"]["count"] == 2


def test_concurrent_increments(tmp_path):
    from src.store.aio import AsyncCodeStore

    async def scenario():
        async with await AsyncCodeStore.open(str(tmp_path / "aio.db")) as store:
            snippet_id = await store.save_snippet("py", "x", "x")
            await asyncio.gather(*(store.increment_snippet_usage(snippet_id) for _ in range(25)))
            return await store.get_snippets_by_language("py")

    (snippet,) = asyncio.run(scenario())
    assert snippet.usage_count == 25


def test_settings_and_transfer(tmp_path):
    from src.store.aio import AsyncCodeStore

    async def scenario():
        async with await AsyncCodeStore.open(str(tmp_path / "aio.db")) as store:
            await store.save_setting("theme", "dark")
            data = await store.export_database()
            await store.delete_setting("theme")
            await store.import_database(data)
            return await store.load_setting("theme")

    assert asyncio.run(scenario()) == "dark"


def test_errors_surface_from_await(tmp_path):
    from src.store.aio import AsyncCodeStore

    async def scenario():
        async with await AsyncCodeStore.open(str(tmp_path / "aio.db")) as store:
            await store.import_database(None)

    with pytest.raises(InvalidInputError):
        asyncio.run(scenario())
