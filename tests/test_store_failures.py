import asyncio
from dataclasses import replace

import pytest

from fake_backend import FakeBackend
from occupancy.errors import NotFoundError, PartialBatchError, RemoteError
from occupancy.records import Position, SectionKey
from occupancy.status import SectionStatus
from occupancy.store import SectionStore


def make_store(backend, **kwargs):
    store = SectionStore(backend, grid_width=15, grid_height=10, aisle=7, **kwargs)
    asyncio.run(store.hydrate())
    return store


def test_failed_status_update_returns_false_and_keeps_state():
    backend = FakeBackend()
    backend.seed("A", "Hall", sections=2)
    store = make_store(backend)
    backend.failures["update_section_status"] = RemoteError("offline")

    assert asyncio.run(store.update_section_status("A1", "red")) is False
    assert store.statuses[SectionKey("A", 1)] is SectionStatus.GREEN


def test_status_update_for_unknown_warehouse_returns_false():
    backend = FakeBackend()
    store = make_store(backend)

    assert asyncio.run(store.update_section_status("Q1", "red")) is False
    assert store.statuses == {}
    assert "update_section_status" not in backend.call_names()


def test_toggle_unknown_section_returns_false():
    backend = FakeBackend()
    backend.seed("A", "Hall", sections=1)
    store = make_store(backend)

    assert asyncio.run(store.toggle_section("A5")) is False


def test_partial_warehouse_creation_is_compensated():
    backend = FakeBackend()
    store = make_store(backend)
    backend.failures["insert_sections"] = RemoteError("batch rejected")

    with pytest.raises(PartialBatchError) as excinfo:
        asyncio.run(store.create_warehouse("indoor", "Hall", 3))

    assert excinfo.value.committed == ()
    assert backend.warehouses == {}
    assert store.warehouses == ()
    assert store.statuses == {}
    assert backend.call_names()[-1] == "delete_warehouse"


def test_failed_compensation_reports_orphaned_warehouse():
    backend = FakeBackend()
    store = make_store(backend)
    backend.failures["insert_sections"] = RemoteError("batch rejected")
    backend.failures["delete_warehouse"] = RemoteError("still offline")

    with pytest.raises(PartialBatchError) as excinfo:
        asyncio.run(store.create_warehouse("indoor", "Hall", 3))

    assert excinfo.value.committed == ("warehouse",)
    assert len(backend.warehouses) == 1
    assert store.warehouses == ()


def test_failed_warehouse_write_propagates():
    backend = FakeBackend()
    store = make_store(backend)
    backend.failures["create_warehouse"] = RemoteError("offline")

    with pytest.raises(RemoteError):
        asyncio.run(store.create_warehouse("indoor", "Hall", 3))

    assert "insert_sections" not in backend.call_names()
    assert store.warehouses == ()


def test_failed_count_update_leaves_removal_undone():
    backend = FakeBackend()
    backend.seed("A", "Hall", sections=2)
    store = make_store(backend)
    before = store.snapshot()
    backend.failures["update_warehouse_section_count"] = RemoteError("offline")

    with pytest.raises(RemoteError) as excinfo:
        asyncio.run(store.remove_section("A1"))

    assert not isinstance(excinfo.value, PartialBatchError)
    assert store.snapshot() == before
    assert "delete_section" not in backend.call_names()


def test_failed_delete_after_count_update_is_partial():
    backend = FakeBackend()
    backend.seed("A", "Hall", sections=2)
    store = make_store(backend)
    before = store.snapshot()
    backend.failures["delete_section"] = RemoteError("offline")

    with pytest.raises(PartialBatchError) as excinfo:
        asyncio.run(store.remove_section("A1"))

    assert excinfo.value.committed == ("section_count",)
    assert store.snapshot() == before


def test_failed_removal_restores_evicted_undo_record():
    backend = FakeBackend()
    backend.seed("A", "Hall", sections=3)
    store = make_store(backend, undo_capacity=2)
    asyncio.run(store.remove_section("A1"))
    asyncio.run(store.remove_section("A2"))
    before = store.removed_sections
    backend.failures["delete_section"] = RemoteError("offline")

    with pytest.raises(PartialBatchError):
        asyncio.run(store.remove_section("A3"))

    assert store.removed_sections == before
    assert [r.number for r in before] == [2, 1]


def test_remove_unknown_section_raises_before_io():
    backend = FakeBackend()
    backend.seed("A", "Hall", sections=1)
    store = make_store(backend)
    backend.calls.clear()

    with pytest.raises(NotFoundError):
        asyncio.run(store.remove_section("A4"))
    with pytest.raises(NotFoundError):
        asyncio.run(store.add_sections("B", 1))

    assert backend.calls == []
    assert store.removed_sections == ()


def test_failed_section_batch_on_add_keeps_state():
    backend = FakeBackend()
    backend.seed("A", "Hall", sections=2)
    store = make_store(backend)
    before = store.snapshot()
    backend.failures["insert_sections"] = RemoteError("offline")

    with pytest.raises(RemoteError):
        asyncio.run(store.add_sections("A", 3))

    assert store.snapshot() == before


def test_failed_move_returns_false_and_keeps_position():
    backend = FakeBackend()
    backend.seed("A", "Hall", sections=2)
    store = make_store(backend)
    backend.failures["update_section_position"] = RemoteError("offline")

    assert asyncio.run(store.move_section("A1", (4, 4))) is False
    assert store.grid("A").position_of(SectionKey("A", 1)) == Position(0, 0)


def test_failed_hydrate_keeps_previous_view():
    backend = FakeBackend()
    backend.seed("A", "Hall", sections=2)
    store = make_store(backend)
    before = store.snapshot()
    backend.failures["list_sections"] = RemoteError("offline")

    with pytest.raises(RemoteError):
        asyncio.run(store.hydrate())

    assert store.snapshot() == before


def test_overlapping_toggles_keep_the_last_response():
    """Requests carry no sequence numbers: the reply processed last wins."""

    backend = FakeBackend()
    backend.seed("A", "Hall", sections=1)
    store = make_store(backend)

    async def scenario():
        first_reply, second_reply = asyncio.Event(), asyncio.Event()
        backend.gates["update_section_status"] = [first_reply, second_reply]
        first = asyncio.create_task(store.update_section_status("A1", "red"))
        second = asyncio.create_task(store.update_section_status("A1", "yellow"))
        await asyncio.sleep(0)
        second_reply.set()
        assert await second
        assert store.statuses[SectionKey("A", 1)] is SectionStatus.YELLOW
        first_reply.set()
        assert await first

    asyncio.run(scenario())

    assert store.statuses[SectionKey("A", 1)] is SectionStatus.RED
    assert backend.sections[(1, 1)].status is SectionStatus.RED


def test_refresh_during_creation_does_not_duplicate_warehouse():
    backend = FakeBackend()
    backend.seed("A", "Hall", sections=1)
    store = make_store(backend)

    async def scenario():
        batch_sent = asyncio.Event()
        backend.gates["insert_sections"] = [batch_sent]
        creating = asyncio.create_task(store.create_warehouse("indoor", "Yard", 2))
        await asyncio.sleep(0)
        await store.hydrate()
        assert [w.letter for w in store.warehouses] == ["A", "B"]
        batch_sent.set()
        await creating

    asyncio.run(scenario())

    assert [w.letter for w in store.warehouses] == ["A", "B"]
    assert sorted(k for k in store.statuses if k.letter == "B") == [
        SectionKey("B", 1),
        SectionKey("B", 2),
    ]
    assert store.grid("B").positions == {
        SectionKey("B", 1): Position(0, 0),
        SectionKey("B", 2): Position(1, 0),
    }


def test_undo_with_failed_count_update_leaves_the_buffer():
    backend = FakeBackend()
    backend.seed("A", "Hall", sections=3)
    store = make_store(backend)
    record = asyncio.run(store.remove_section("A2"))
    backend.failures["update_warehouse_section_count"] = RemoteError("offline")

    with pytest.raises(PartialBatchError) as excinfo:
        asyncio.run(store.undo_removal(record))

    assert excinfo.value.committed == ("section",)
    assert store.removed_sections == ()
    asyncio.run(store.hydrate())
    assert SectionKey("A", 2) in store.statuses
    with pytest.raises(NotFoundError):
        asyncio.run(store.undo_removal("A2"))


def test_stored_positions_in_the_aisle_are_replaced_on_hydrate():
    backend = FakeBackend()
    warehouse = backend.seed("A", "Hall", sections=2)
    backend.sections[(warehouse.id, 1)] = replace(
        backend.sections[(warehouse.id, 1)], position=Position(7, 0)
    )
    backend.sections[(warehouse.id, 2)] = replace(
        backend.sections[(warehouse.id, 2)], position=Position(40, 0)
    )

    store = make_store(backend)

    positions = store.grid("A").positions
    assert positions == {
        SectionKey("A", 1): Position(0, 0),
        SectionKey("A", 2): Position(1, 0),
    }
    assert all(p.x != store.aisle for p in positions.values())
