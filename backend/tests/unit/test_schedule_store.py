"""
Unit tests for schedule entry stores.

Tests the in-memory store and the SQL store against a mocked AsyncSession.
"""

from unittest.mock import MagicMock

import pytest

from orbis.db.models_learning import ScheduleRecord
from orbis.services.learning.schedule_store import InMemoryScheduleStore, SqlScheduleStore


def _record_from_entry(entry) -> ScheduleRecord:
    return ScheduleRecord(
        item_id=entry.item_id,
        next_due_at=entry.next_due_at,
        last_rating=entry.last_rating,
        rating_history=list(entry.rating_history),
        leech_count=entry.leech_count,
        snoozed_until=entry.snoozed_until,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


class TestInMemoryScheduleStore:
    """Tests for the dict-backed store."""

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, memory_store):
        """Unknown items return None."""
        assert await memory_store.get("missing") is None

    @pytest.mark.asyncio
    async def test_upsert_and_get(self, memory_store, make_entry):
        """Upserted entries can be read back."""
        entry = make_entry("two-sum")

        await memory_store.upsert(entry)

        assert await memory_store.get("two-sum") == entry

    @pytest.mark.asyncio
    async def test_upsert_replaces(self, memory_store, make_entry):
        """A second upsert for the same item replaces the first."""
        await memory_store.upsert(make_entry("two-sum", history=[3]))
        await memory_store.upsert(make_entry("two-sum", history=[3, 5]))

        entries = await memory_store.list_all()
        assert len(entries) == 1
        assert entries[0].rating_history == [3, 5]

    @pytest.mark.asyncio
    async def test_entries_are_copied(self, memory_store, make_entry):
        """Mutating a returned entry does not change the store."""
        await memory_store.upsert(make_entry("two-sum", history=[3]))

        fetched = await memory_store.get("two-sum")
        fetched.rating_history.append(1)

        assert (await memory_store.get("two-sum")).rating_history == [3]


class TestSqlScheduleStore:
    """Tests for the SQLAlchemy-backed store."""

    @pytest.mark.asyncio
    async def test_get_missing(self, mock_db_session):
        """A missing row returns None."""
        store = SqlScheduleStore(mock_db_session)

        assert await store.get("missing") is None
        mock_db_session.get.assert_awaited_once_with(ScheduleRecord, "missing")

    @pytest.mark.asyncio
    async def test_get_converts_record(self, mock_db_session, make_entry):
        """Rows are converted to ScheduleEntry models."""
        entry = make_entry("two-sum", history=[1, 3], leech_count=0)
        mock_db_session.get.return_value = _record_from_entry(entry)
        store = SqlScheduleStore(mock_db_session)

        assert await store.get("two-sum") == entry

    @pytest.mark.asyncio
    async def test_upsert_inserts_new_row(self, mock_db_session, make_entry):
        """A new item adds a row and commits."""
        entry = make_entry("two-sum", history=[2])
        store = SqlScheduleStore(mock_db_session)

        await store.upsert(entry)

        mock_db_session.add.assert_called_once()
        record = mock_db_session.add.call_args[0][0]
        assert isinstance(record, ScheduleRecord)
        assert record.item_id == "two-sum"
        assert record.rating_history == [2]
        assert record.next_due_at == entry.next_due_at
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_upsert_updates_existing_row(self, mock_db_session, make_entry):
        """An existing row is updated in place."""
        old = make_entry("two-sum", history=[3])
        record = _record_from_entry(old)
        mock_db_session.get.return_value = record
        store = SqlScheduleStore(mock_db_session)

        new = make_entry("two-sum", history=[3, 1], due_in_days=1)
        await store.upsert(new)

        mock_db_session.add.assert_not_called()
        assert record.rating_history == [3, 1]
        assert record.last_rating == 1
        assert record.next_due_at == new.next_due_at
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_list_all(self, mock_db_session, make_entry):
        """list_all converts every row from the query."""
        entries = [make_entry("a", due_in_days=-2), make_entry("b", due_in_days=1)]
        result = MagicMock()
        result.scalars.return_value.all.return_value = [
            _record_from_entry(e) for e in entries
        ]
        mock_db_session.execute.return_value = result
        store = SqlScheduleStore(mock_db_session)

        listed = await store.list_all()

        assert [e.item_id for e in listed] == ["a", "b"]
        mock_db_session.execute.assert_awaited_once()
