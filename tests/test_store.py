import json
import logging
from datetime import date
from invoice_tracker.db.storage import InMemoryStorage, JsonFileStorage, StorageError, StorageQuotaExceeded
from invoice_tracker.db.store import InvoiceStore
from invoice_tracker.schemas.invoice import Invoice, InvoiceStatus


class RecordingStorage(InMemoryStorage):
    """Counts writes so tests can tell whether persist ran."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.writes = 0

    def set_item(self, key, value):
        self.writes += 1
        super().set_item(key, value)


class BrokenStorage(InMemoryStorage):
    def set_item(self, key, value):
        raise StorageError("disk on fire")


def fields(**overrides):
    data = {"number": "F-100", "date": date(2024, 4, 1), "client": "Acme", "amount": 1500, "status": "pending", "notes": ""}
    data.update(overrides)
    return data


def test_load_returns_empty_when_nothing_persisted(store):
    assert store.load() == []
    assert len(store) == 0


def test_create_assigns_id_and_default_date(store):
    invoice = store.create(fields(date=None))
    assert invoice.id
    assert invoice.date == date.today()
    assert invoice.status == InvoiceStatus.PENDING
    assert store.list() == [invoice]


def test_created_ids_are_unique(store):
    ids = {store.create(fields(number=f"F-{i}")).id for i in range(50)}
    assert len(ids) == 50


def test_round_trip_preserves_fields(store, scenario_invoices):
    assert store.persist(scenario_invoices) is True
    loaded = store.load()
    assert loaded == scenario_invoices

    assert store.persist(store.load()) is True
    assert store.load() == scenario_invoices


def test_update_replaces_whole_record(store):
    created = store.create(fields(notes="first draft"))
    updated = store.update(created.id, fields(number="F-200", client="Globex", amount=99, status="paid"))

    assert updated.id == created.id
    assert updated.number == "F-200"
    assert updated.client == "Globex"
    assert updated.notes == ""
    assert updated.status == InvoiceStatus.PAID
    assert store.get(created.id) == updated
    assert len(store) == 1


def test_update_unknown_id_returns_none():
    storage = RecordingStorage()
    store = InvoiceStore(storage, "k")
    store.create(fields())
    writes_before = storage.writes

    assert store.update("missing", fields()) is None
    assert storage.writes == writes_before


def test_remove_deletes_and_persists():
    storage = RecordingStorage()
    store = InvoiceStore(storage, "k")
    keep = store.create(fields(number="keep"))
    drop = store.create(fields(number="drop"))

    assert store.remove(drop.id) is True
    assert store.list() == [keep]
    assert [item["number"] for item in json.loads(storage.get_item("k"))] == ["keep"]


def test_remove_last_record_persists_empty_list():
    storage = RecordingStorage()
    store = InvoiceStore(storage, "k")
    only = store.create(fields())

    store.remove(only.id)
    assert json.loads(storage.get_item("k")) == []
    assert InvoiceStore(storage, "k").load() == []


def test_remove_unknown_id_leaves_collection_and_skips_persist():
    storage = RecordingStorage()
    store = InvoiceStore(storage, "k")
    store.create(fields())
    before = store.list()
    writes_before = storage.writes

    assert store.remove("does-not-exist") is False
    assert store.list() == before
    assert storage.writes == writes_before


def test_persist_failure_is_reported_not_raised(caplog):
    store = InvoiceStore(BrokenStorage(), "k")
    with caplog.at_level(logging.ERROR):
        invoice = store.create(fields())

    assert store.last_persist_ok is False
    # the in-memory collection stays authoritative
    assert store.list() == [invoice]
    assert "Error saving invoices" in caplog.text


def test_quota_exceeded_returns_false():
    store = InvoiceStore(InMemoryStorage(quota_bytes=200), "k")
    big = [Invoice(number=f"F-{i}", date=date(2024, 1, 1), client="X" * 50, amount=1) for i in range(10)]
    assert store.persist(big) is False
    assert store.last_persist_ok is False


def test_quota_error_is_a_storage_error():
    storage = InMemoryStorage(quota_bytes=10)
    try:
        storage.set_item("key", "a much longer value")
    except StorageQuotaExceeded as e:
        assert isinstance(e, StorageError)
    else:
        raise AssertionError("quota was not enforced")


def test_unparseable_payload_loads_as_empty(caplog):
    storage = InMemoryStorage()
    storage.set_item("k", "{not json")
    store = InvoiceStore(storage, "k")
    with caplog.at_level(logging.ERROR):
        assert store.load() == []
    assert "Error parsing stored invoices" in caplog.text


def test_non_list_payload_loads_as_empty():
    storage = InMemoryStorage()
    storage.set_item("k", json.dumps({"id": "x"}))
    assert InvoiceStore(storage, "k").load() == []


def test_load_defaults_missing_fields_and_skips_broken_records():
    storage = InMemoryStorage()
    storage.set_item("k", json.dumps([
        {"id": "ok", "number": "F-1", "date": "2024-01-05", "client": "A", "amount": "abc", "extra": 1},
        {"id": "no-date", "number": "F-2", "client": "B", "amount": 10},
        "garbage",
        {"id": "partial", "date": "2024-02-01"},
    ]))
    loaded = InvoiceStore(storage, "k").load()

    assert [inv.id for inv in loaded] == ["ok", "partial"]
    ok, partial = loaded
    assert ok.amount == 0
    assert ok.status == InvoiceStatus.PENDING
    assert partial.number == ""
    assert partial.notes == ""


def test_load_reads_legacy_spanish_records():
    storage = InMemoryStorage()
    storage.set_item("k", json.dumps([
        {"id": "lx1", "numero": "FAC-001", "fecha": "2023-12-01", "cliente": "Comercial Sur",
         "monto": "250000", "estado": "vencida", "notas": "llamar"},
        {"id": "lx2", "numero": "FAC-002", "fecha": "2023-12-02", "cliente": "Comercial Sur",
         "monto": 1000, "estado": "pagado"},
    ]))
    store = InvoiceStore(storage, "k")
    first, second = store.load()

    assert first.number == "FAC-001"
    assert first.client == "Comercial Sur"
    assert first.amount == 250000
    assert first.status == InvoiceStatus.OVERDUE
    assert first.notes == "llamar"
    assert second.status == InvoiceStatus.PAID

    # rewritten with English field names
    store.persist()
    assert set(json.loads(storage.get_item("k"))[0]) == {"id", "number", "date", "client", "amount", "status", "notes"}


def test_load_reassigns_duplicate_ids():
    storage = InMemoryStorage()
    storage.set_item("k", json.dumps([
        {"id": "dup", "number": "F-1", "date": "2024-01-01"},
        {"id": "dup", "number": "F-2", "date": "2024-01-02"},
    ]))
    loaded = InvoiceStore(storage, "k").load()
    assert loaded[0].id == "dup"
    assert loaded[1].id != "dup"


def test_search_matches_number_and_client_case_insensitively(store):
    store.create(fields(number="FAC-001", client="Globex"))
    store.create(fields(number="INV-777", client="Initech"))

    assert [inv.number for inv in store.search("fac")] == ["FAC-001"]
    assert [inv.client for inv in store.search("INITECH")] == ["Initech"]
    assert len(store.search("")) == 2
    assert len(store.search(None)) == 2
    assert store.search("nothing") == []


def test_json_file_storage_round_trip(tmp_path):
    path = tmp_path / "nested" / "storage.json"
    storage = JsonFileStorage(path)
    assert storage.get_item("k") is None

    storage.set_item("k", "value")
    storage.set_item("other", "x")
    assert JsonFileStorage(path).get_item("k") == "value"

    storage.remove_item("other")
    assert json.loads(path.read_text(encoding="utf-8")) == {"k": "value"}
    assert not (tmp_path / "nested" / "storage.json.tmp").exists()


def test_json_file_storage_corrupt_file_raises(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("[1, 2", encoding="utf-8")
    storage = JsonFileStorage(path)
    try:
        storage.get_item("k")
    except StorageError:
        pass
    else:
        raise AssertionError("corrupt file was accepted")

    # the store swallows it and starts empty
    assert InvoiceStore(storage, "k").load() == []


def test_json_file_storage_recovers_from_corrupt_file_on_write(tmp_path, caplog):
    path = tmp_path / "storage.json"
    path.write_text("[1, 2", encoding="utf-8")
    store = InvoiceStore(JsonFileStorage(path), "k")
    assert store.load() == []

    with caplog.at_level(logging.WARNING):
        created = store.create(fields())

    assert store.last_persist_ok is True
    assert (tmp_path / "storage.json.corrupt").read_text(encoding="utf-8") == "[1, 2"
    assert "moved aside" in caplog.text
    assert InvoiceStore(JsonFileStorage(path), "k").load() == [created]
