from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from perangkat.store import ChangeFeed, DocumentNotFound, InvalidField, StoreWriteError, UnknownCollection


@pytest.mark.asyncio
async def test_subscribers_receive_full_snapshot(store):
    received = []
    unsubscribe = store.subscribe("kalender_events", received.append)

    await store.create("kalender_events", {"date": "2024-08-17", "title": "HUT RI", "type": "libur"})
    await store.create("kalender_events", {"date": "2024-09-16", "title": "Maulid Nabi", "type": "libur"})

    assert [len(docs) for docs in received] == [1, 2]
    assert received[-1][1]["title"] == "Maulid Nabi"

    unsubscribe()
    await store.create("kalender_events", {"date": "2024-12-25", "title": "Natal", "type": "libur"})
    assert len(received) == 2


@pytest.mark.asyncio
async def test_async_listener_and_failing_listener(store):
    async_listener = AsyncMock()
    store.subscribe("jadwal_pelajaran", lambda docs: 1 / 0)
    store.subscribe("jadwal_pelajaran", async_listener)

    await store.create("jadwal_pelajaran", {"kelas": "5", "hari": "Senin", "jam_ke": 1, "mapel": "IPAS"})

    async_listener.assert_awaited_once()


def test_unknown_collection():
    with pytest.raises(UnknownCollection):
        ChangeFeed().subscribe("nilai", print)


@pytest.mark.asyncio
async def test_get_update_delete(store):
    row = await store.create("academic_years", {"year": "2024/2025"})

    updated = await store.update("academic_years", row.id, {"is_active": True})
    assert updated.is_active is True

    with pytest.raises(InvalidField):
        await store.update("academic_years", row.id, {"tahun": "2025"})

    await store.delete("academic_years", row.id)
    with pytest.raises(DocumentNotFound):
        await store.get("academic_years", row.id)


@pytest.mark.asyncio
async def test_rejected_write_raises_store_error(store):
    with patch.object(store.session, "commit", AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full")))):
        with pytest.raises(StoreWriteError):
            await store.create("academic_years", {"year": "2030/2031"})
