import logging

import pytest

from geonear import Exact, GeoPointStore, InvalidCoordinate, InvalidParameter, Near, NotFound


def test_insert_assigns_increasing_ids_and_copies_payload():
    store = GeoPointStore()
    payload = {"name": "a", "tags": ["x"]}
    first = store.insert(1, 2, payload)
    second = store.insert(3, 4)
    payload["name"] = "changed"

    assert second > first
    point = store.get(first)
    assert (point.lon, point.lat) == (1.0, 2.0)
    assert point.payload == {"name": "a", "tags": ["x"]}
    assert store.get(second).payload == {}


@pytest.mark.parametrize(
    "lon,lat",
    [(180.01, 0), (-180.5, 0), (0, 90.5), (0, -91), (float("nan"), 0), ("east", 0), (None, 0)],
)
def test_insert_rejects_invalid_coordinates(lon, lat):
    store = GeoPointStore()
    with pytest.raises(InvalidCoordinate):
        store.insert(lon, lat)
    assert len(store) == 0


def test_insert_accepts_range_edges():
    store = GeoPointStore()
    store.insert(-180, -90)
    store.insert(180, 90)
    assert len(store) == 2


def test_get_and_remove_unknown_id_raise_not_found():
    store = GeoPointStore()
    with pytest.raises(NotFound):
        store.get(42)
    with pytest.raises(NotFound):
        store.remove(42)


def test_remove_drops_point_from_store_and_index():
    store = GeoPointStore()
    pid = store.insert(50, 30)
    store.remove(pid)

    assert pid not in store
    assert len(store.query(Exact(lon=50, lat=30))) == 0
    with pytest.raises(NotFound):
        store.remove(pid)


def test_insert_many_is_all_or_nothing():
    store = GeoPointStore()
    ids = store.insert_many([(0, 0), (1, 1, {"name": "one"})])
    assert len(ids) == 2
    assert store.get(ids[1]).payload == {"name": "one"}

    with pytest.raises(InvalidCoordinate):
        store.insert_many([(2, 2), (200, 0)])
    assert len(store) == 2


def test_iteration_is_in_insertion_order():
    store = GeoPointStore()
    store.insert_many([(5, 5), (1, 1), (3, 3)])
    assert [(p.lon, p.lat) for p in store] == [(5, 5), (1, 1), (3, 3)]


def test_clear_empties_store_and_keeps_ids_fresh():
    store = GeoPointStore()
    old = store.insert(0, 0)
    store.clear()

    assert len(store) == 0
    assert len(store.query(Exact(lon=0, lat=0))) == 0
    assert store.insert(0, 0) > old


def test_stores_are_independent():
    a = GeoPointStore()
    b = GeoPointStore()
    a.insert(0, 0)
    assert len(a) == 1
    assert len(b) == 0


def test_bulk_insert_is_logged(caplog):
    caplog.set_level(logging.INFO, logger="geonear")
    store = GeoPointStore()
    store.insert_many([(0, 0), (1, 1), (2, 2)])
    assert "Bulk-inserted 3 points" in caplog.text


def test_payload_may_use_any_hashable_keys():
    store = GeoPointStore()
    pid = store.insert(0, 0, {1: "one", ("a", "b"): [1, 2], "name": "origin"})
    assert store.get(pid).payload == {1: "one", ("a", "b"): [1, 2], "name": "origin"}


def test_non_mapping_payload_raises_invalid_parameter():
    store = GeoPointStore()
    with pytest.raises(InvalidParameter) as excinfo:
        store.insert(0, 0, ["not", "a", "mapping"])
    assert excinfo.value.name == "payload"
    assert len(store) == 0


def test_insert_many_bad_payload_mid_batch_stores_nothing():
    store = GeoPointStore()
    records = [(0, 0), (1, 1, {1: "int key is fine"}), (2, 2, "not a mapping"), (3, 3)]

    with pytest.raises(InvalidParameter):
        store.insert_many(records)

    assert len(store) == 0
    assert len(store.query(Near(origin=(0, 0)))) == 0
    # A rejected batch does not consume ids.
    assert store.insert(5, 5) == 1


@pytest.mark.parametrize("record", [(1,), (1, 2, {}, "extra"), 7])
def test_insert_many_rejects_malformed_records(record):
    store = GeoPointStore()
    with pytest.raises(InvalidParameter) as excinfo:
        store.insert_many([(0, 0), record])
    assert excinfo.value.name == "record"
    assert len(store) == 0


def test_stored_payload_cannot_be_changed_through_returned_points():
    store = GeoPointStore()
    original = {"name": "a", "tags": ["a"]}
    pid = store.insert(0, 0, original)

    # Nested values are copied on insert.
    original["tags"].append("from caller")

    fetched = store.get(pid)
    fetched.payload["tags"].append("b")
    fetched.payload["name"] = "x"

    for point in store:
        point.payload["tags"].append("c")

    result = store.query(Near(origin=(0, 0)))
    result.points()[0].payload["tags"].append("d")

    assert store.get(pid).payload == {"name": "a", "tags": ["a"]}
    assert store.query(Exact(lon=0, lat=0)).points()[0].payload == {"name": "a", "tags": ["a"]}
