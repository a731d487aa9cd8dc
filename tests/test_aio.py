from __future__ import annotations

import asyncio

from dirstore.aio import AsyncQuery, aflush


def test_async_query_basic_flow(students):
    async def _run():
        q = AsyncQuery(students)

        older = await q.where_greater("age", 10)
        assert sorted(d.logical_name for d in older) == ["alice", "bob"]

        younger = await q.where_smaller("age", 15)
        assert sorted(d.logical_name for d in younger) == ["alice", "carol"]

        named = await q.where_equal("name", "Carol")
        assert [d.logical_name for d in named] == ["carol"]

        inactive = await q.where(lambda f: f.get("active") is False)
        assert [d.logical_name for d in inactive] == ["bob"]

        holders = await q.which_has("alice")
        assert {c.name for c in holders} == {"junior"}

        ordered = await q.order_by("age", ascending=True)
        assert [d.logical_name for d in ordered] == ["bob"]

    asyncio.run(_run())


def test_aflush_waits_for_writes(database):
    async def _run():
        doc = database.root.document("async")
        for i in range(10):
            doc.put("n", i)
        await aflush(doc)
        assert doc.pending_writes == 0
        assert database.root.document("async").get("n") == 9

    asyncio.run(_run())
