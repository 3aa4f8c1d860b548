from unittest.mock import MagicMock

from services.inventory_models import Locker
from services.locker_resolver import LockerResolver


def test_existing_lockers_come_from_cache(ctx, grouping_store, warehouse_id):
    locker_id = grouping_store.create(warehouse_id, "Shelf-1")
    resolver = LockerResolver(grouping_store, warehouse_id)

    assert resolver.resolve(ctx, "Shelf-1") == locker_id
    assert resolver.created == []
    assert len(grouping_store.list(warehouse_id)) == 1


def test_unknown_locker_created_once(ctx, grouping_store, warehouse_id):
    resolver = LockerResolver(grouping_store, warehouse_id)

    first = resolver.resolve(ctx, "Shelf-3")
    second = resolver.resolve(ctx, "Shelf-3")

    assert first == second
    assert resolver.created == [first]
    assert [l.name for l in grouping_store.list(warehouse_id)] == ["Shelf-3"]


def test_peek_never_creates(grouping_store, warehouse_id):
    resolver = LockerResolver(grouping_store, warehouse_id)
    assert resolver.peek("Shelf-9") is None
    assert grouping_store.list(warehouse_id) == []


def test_lockers_of_other_warehouses_are_ignored(ctx, grouping_store, warehouse_store, warehouse_id):
    other = warehouse_store.create("Branch")
    other_locker = grouping_store.create(other, "Shelf-1")

    resolver = LockerResolver(grouping_store, warehouse_id)
    assert resolver.resolve(ctx, "Shelf-1") != other_locker


def test_store_is_listed_once(ctx):
    store = MagicMock()
    store.list.return_value = [Locker("l-1", "w-1", "A")]
    store.create.return_value = "l-2"

    resolver = LockerResolver(store, "w-1")
    resolver.resolve(ctx, "A")
    resolver.resolve(ctx, "B")
    resolver.resolve(ctx, "B")

    store.list.assert_called_once_with("w-1")
    store.create.assert_called_once_with("w-1", "B")
