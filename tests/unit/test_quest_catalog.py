"""Catalog listing built in a single query."""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import event

from edufund.database import get_engine
from edufund.db.models import Reward
from edufund.quests.service import list_quests
from tests.helpers import learner_address, make_pool, make_quest


class TestListQuests:
    @pytest.mark.asyncio
    async def test_one_statement_for_many_quests(self, db_session):
        pool = await make_pool(db_session, total_fund=100, reward_per_student=10, max_participants=4)
        pool_id, pooled_quest_id = pool.id, pool.quest_id
        db_session.add(
            Reward(wallet=learner_address(1), quest_id=pooled_quest_id, amount=Decimal(10), pool_id=pool_id)
        )
        await db_session.commit()
        for n in range(3):
            await make_quest(db_session, title=f"Treasury Quest {n}")

        statements: list[str] = []

        def record(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        engine = get_engine().sync_engine
        event.listen(engine, "before_cursor_execute", record)
        try:
            quests = await list_quests(db_session)
        finally:
            event.remove(engine, "before_cursor_execute", record)

        assert len(statements) == 1
        assert len(quests) == 4
        pooled = next(q for q in quests if q["id"] == pooled_quest_id)
        assert pooled["reward"] == Decimal(10)
        assert pooled["pool_status"]["has_pool"] is True
        assert pooled["pool_status"]["company_name"] == "Acme Learning"
        assert pooled["pool_status"]["remaining_slots"] == 3
        assert all(q["pool_status"]["has_pool"] is False for q in quests if q["id"] != pooled_quest_id)

    @pytest.mark.asyncio
    async def test_closed_pool_leaves_quest_unfunded(self, db_session):
        quest = await make_quest(db_session)
        pool = await make_pool(db_session)
        pool.active = False
        await db_session.commit()

        quests = await list_quests(db_session)
        assert [q["id"] for q in quests if q["pool_status"]["has_pool"]] == []
        assert quest.id in {q["id"] for q in quests}
