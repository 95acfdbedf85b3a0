from __future__ import annotations
from contextlib import contextmanager
from typing import Optional, Dict, Any, List
import json, sqlite3, os
from recordgate_core.storage.provider import StorageProvider
from recordgate_core.storage.models import AuditEvent, IdentityRow, RecordRow
from recordgate_core.utils import now_ts


class SQLiteStorage(StorageProvider):
    def __init__(self, path="db/recordgate.db"):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.db = sqlite3.connect(path, check_same_thread=False)
        self._depth = 0

        self._init()

    def _init(self) -> None:
        c = self.db.cursor()

        c.execute("""CREATE TABLE IF NOT EXISTS identities(
            principal TEXT PRIMARY KEY,
            issued_at INTEGER NOT NULL,
            expires_at INTEGER NOT NULL,
            revoked INTEGER NOT NULL DEFAULT 0
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS identity_attributes(
            principal TEXT NOT NULL,
            attr_key TEXT NOT NULL,
            attr_value TEXT NOT NULL,
            PRIMARY KEY (principal, attr_key)
        )""")
        # payload column has no type affinity so bytes and str come back unchanged
        c.execute("""CREATE TABLE IF NOT EXISTS records(
            record_id INTEGER PRIMARY KEY,
            owner TEXT NOT NULL,
            payload BLOB NOT NULL,
            created_at INTEGER NOT NULL
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS record_acl(
            record_id INTEGER NOT NULL,
            grantee TEXT NOT NULL,
            PRIMARY KEY (record_id, grantee)
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS audit(
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            ts TEXT,
            event_type TEXT,
            payload TEXT
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS replay_guard(
            msg_id TEXT PRIMARY KEY
        )""")

        self.db.commit()

    @contextmanager
    def transaction(self):
        """
        Group writes into one commit. Nested use joins the outer transaction;
        an exception anywhere rolls back every write since the outermost entry.
        """
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self.db.rollback()
            raise
        else:
            self._depth -= 1
            if self._depth == 0:
                self.db.commit()

    def _commit(self) -> None:
        if self._depth == 0:
            self.db.commit()

    # --- identities ---

    def upsert_identity(self, row: IdentityRow) -> None:
        self.db.execute(
            "INSERT INTO identities(principal,issued_at,expires_at,revoked) VALUES(?,?,?,?) "
            "ON CONFLICT(principal) DO UPDATE SET issued_at=excluded.issued_at, "
            "expires_at=excluded.expires_at, revoked=excluded.revoked",
            (row.principal, row.issued_at, row.expires_at, int(row.revoked))
        )
        self._commit()

    def get_identity(self, principal: str) -> Optional[IdentityRow]:
        cur = self.db.execute(
            "SELECT principal,issued_at,expires_at,revoked FROM identities WHERE principal=?", (principal,)
        )
        row = cur.fetchone()
        if not row: return None
        principal, issued_at, expires_at, revoked = row
        return IdentityRow(principal, issued_at, expires_at, bool(revoked))

    def revoke_identity(self, principal: str) -> None:
        self.db.execute("UPDATE identities SET revoked=1 WHERE principal=?", (principal,))
        self._commit()

    # --- attributes ---

    def replace_attributes(self, principal: str, attributes: Dict[str, str]) -> None:
        self.db.execute("DELETE FROM identity_attributes WHERE principal=?", (principal,))
        self.db.executemany(
            "INSERT INTO identity_attributes(principal,attr_key,attr_value) VALUES(?,?,?)",
            [(principal, k, v) for k, v in attributes.items()]
        )
        self._commit()

    def get_attributes(self, principal: str) -> Dict[str, str]:
        cur = self.db.execute(
            "SELECT attr_key, attr_value FROM identity_attributes WHERE principal=?", (principal,)
        )
        return {k: v for k, v in cur.fetchall()}

    def get_attribute(self, principal: str, key: str) -> Optional[str]:
        cur = self.db.execute(
            "SELECT attr_value FROM identity_attributes WHERE principal=? AND attr_key=?", (principal, key)
        )
        row = cur.fetchone()
        return row[0] if row else None

    # --- records and access lists ---

    def insert_record(self, row: RecordRow) -> None:
        self.db.execute(
            "INSERT INTO records(record_id,owner,payload,created_at) VALUES(?,?,?,?)",
            (row.record_id, row.owner, row.payload, row.created_at)
        )
        self._commit()

    def get_record(self, record_id: int) -> Optional[RecordRow]:
        cur = self.db.execute(
            "SELECT record_id,owner,payload,created_at FROM records WHERE record_id=?", (record_id,)
        )
        row = cur.fetchone()
        return RecordRow(*row) if row else None

    def add_grant(self, record_id: int, grantee: str) -> None:
        self.db.execute("INSERT OR IGNORE INTO record_acl(record_id,grantee) VALUES(?,?)", (record_id, grantee))
        self._commit()

    def remove_grant(self, record_id: int, grantee: str) -> None:
        self.db.execute("DELETE FROM record_acl WHERE record_id=? AND grantee=?", (record_id, grantee))
        self._commit()

    def has_grant(self, record_id: int, grantee: str) -> bool:
        cur = self.db.execute("SELECT 1 FROM record_acl WHERE record_id=? AND grantee=?", (record_id, grantee))
        return cur.fetchone() is not None

    def list_grants(self, record_id: int) -> List[str]:
        cur = self.db.execute(
            "SELECT grantee FROM record_acl WHERE record_id=? ORDER BY grantee", (record_id,)
        )
        return [r[0] for r in cur.fetchall()]

    # --- audit ---

    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        self.db.execute("INSERT INTO audit(ts,event_type,payload) VALUES(?,?,?)",
                        (now_ts(), event_type, json.dumps(payload, separators=(",", ":"), sort_keys=True)))
        self._commit()

    def list_events(self) -> List[AuditEvent]:
        cur = self.db.execute("SELECT ts, event_type, payload FROM audit ORDER BY seq")
        return [
            AuditEvent(ts=ts, event_type=event_type, payload=json.loads(payload) if payload else {})
            for ts, event_type, payload in cur.fetchall()
        ]

    # --- replay guard ---

    def seen_msg(self, msg_id: str) -> bool:
        cur = self.db.execute("SELECT 1 FROM replay_guard WHERE msg_id=?", (msg_id,))
        return cur.fetchone() is not None

    def mark_msg(self, msg_id: str) -> None:
        self.db.execute("INSERT OR IGNORE INTO replay_guard(msg_id) VALUES(?)", (msg_id,))
        self._commit()

    def close(self):
        self.db.close()
