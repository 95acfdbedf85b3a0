import pytest

from recordgate_core.storage import (
    IdentityRow, InMemoryStorage, RecordRow, SQLiteStorage, load_storage_provider
)


def test_storage_identity_roundtrip(storage):
    storage.upsert_identity(IdentityRow("0xabc", issued_at=10, expires_at=20))
    storage.replace_attributes("0xabc", {"country": "NZ", "user_type": "patient"})

    got = storage.get_identity("0xabc")
    assert got == IdentityRow("0xabc", 10, 20, False)
    assert storage.get_attributes("0xabc") == {"country": "NZ", "user_type": "patient"}
    assert storage.get_attribute("0xabc", "country") == "NZ"
    assert storage.get_attribute("0xabc", "missing") is None

    storage.revoke_identity("0xabc")
    assert storage.get_identity("0xabc").revoked is True


def test_replace_attributes_drops_old_keys(storage):
    storage.replace_attributes("0xabc", {"a": "1", "b": "2"})
    storage.replace_attributes("0xabc", {"c": "3"})
    assert storage.get_attributes("0xabc") == {"c": "3"}


@pytest.mark.parametrize("payload", [b"\x00\xffraw", "Patient Health Data"])
def test_record_payload_type_preserved(storage, payload):
    storage.insert_record(RecordRow(1, "0xowner", payload, created_at=5))
    got = storage.get_record(1)
    assert got.payload == payload
    assert type(got.payload) is type(payload)


def test_grants_have_set_semantics(storage):
    storage.insert_record(RecordRow(1, "0xowner", b"x", 5))
    storage.add_grant(1, "0xb")
    storage.add_grant(1, "0xa")
    storage.add_grant(1, "0xb")
    assert storage.list_grants(1) == ["0xa", "0xb"]

    storage.remove_grant(1, "0xb")
    storage.remove_grant(1, "0xb")
    assert not storage.has_grant(1, "0xb")
    assert storage.list_grants(1) == ["0xa"]


def test_replay_guard_and_audit(storage):
    storage.mark_msg("123")
    assert storage.seen_msg("123")
    assert not storage.seen_msg("456")

    storage.log_event("record.added", {"record_id": 1})
    events = storage.list_events()
    assert [e.event_type for e in events] == ["record.added"]
    assert events[0].payload == {"record_id": 1}


def test_transaction_rolls_back_every_write(storage):
    with pytest.raises(RuntimeError):
        with storage.transaction():
            storage.insert_record(RecordRow(1, "0xowner", b"x", 5))
            storage.add_grant(1, "0xa")
            storage.mark_msg("m1")
            raise RuntimeError("abort")

    assert storage.get_record(1) is None
    assert not storage.has_grant(1, "0xa")
    assert not storage.seen_msg("m1")


def test_nested_transaction_joins_outer(storage):
    with pytest.raises(RuntimeError):
        with storage.transaction():
            with storage.transaction():
                storage.mark_msg("inner")
            raise RuntimeError("abort")
    assert not storage.seen_msg("inner")


def test_sqlite_persists_across_connections(tmp_path):
    path = str(tmp_path / "state.db")
    s = SQLiteStorage(path)
    with s.transaction():
        s.insert_record(RecordRow(9, "0xowner", b"x", 5))
    s.close()

    s2 = SQLiteStorage(path)
    assert s2.get_record(9).owner == "0xowner"
    s2.close()


def test_sqlite_schema_exists(tmp_path):
    store = SQLiteStorage(str(tmp_path / "state.db"))
    cur = store.db.execute("PRAGMA table_info(record_acl)")
    cols = [row[1] for row in cur.fetchall()]
    assert cols == ["record_id", "grantee"]
    store.close()


def test_storage_factory_modes(monkeypatch, tmp_path):
    monkeypatch.setenv("RECORDGATE_STORAGE_PROVIDER", "memory")
    assert isinstance(load_storage_provider(), InMemoryStorage)

    monkeypatch.setenv("RECORDGATE_STORAGE_PROVIDER", "sqlite")
    monkeypatch.setenv("RECORDGATE_DB_PATH", str(tmp_path / "env.db"))
    s = load_storage_provider()
    assert isinstance(s, SQLiteStorage)
    s.close()
    assert (tmp_path / "env.db").exists()

    # explicit config wins over the environment
    assert isinstance(load_storage_provider({"provider": "memory"}), InMemoryStorage)

    with pytest.raises(ValueError):
        load_storage_provider({"provider": "postgres"})


def test_transaction_restores_overwritten_state(storage):
    storage.upsert_identity(IdentityRow("0xabc", issued_at=10, expires_at=20))
    storage.replace_attributes("0xabc", {"user_type": "patient"})
    storage.insert_record(RecordRow(1, "0xowner", b"x", 5))
    storage.add_grant(1, "0xa")

    with pytest.raises(RuntimeError):
        with storage.transaction():
            storage.revoke_identity("0xabc")
            storage.upsert_identity(IdentityRow("0xabc", issued_at=30, expires_at=40))
            storage.replace_attributes("0xabc", {"user_type": "doctor", "ward": "7"})
            storage.remove_grant(1, "0xa")
            storage.add_grant(1, "0xb")
            storage.log_event("access.revoked", {"record_id": 1})
            raise RuntimeError("abort")

    assert storage.get_identity("0xabc") == IdentityRow("0xabc", 10, 20, False)
    assert storage.get_attributes("0xabc") == {"user_type": "patient"}
    assert storage.list_grants(1) == ["0xa"]
    assert storage.list_events() == []


def test_memory_reads_record_no_undo_steps():
    storage = InMemoryStorage()
    storage.insert_record(RecordRow(1, "0xowner", b"x", 5))
    with storage.transaction():
        storage.get_record(1)
        storage.has_grant(1, "0xa")
        storage.list_events()
        assert storage._journal == []
