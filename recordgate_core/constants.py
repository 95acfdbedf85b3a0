SCHEMA_VERSION = "1.0"

ADDRESS_PREFIX = "0x"
ADDRESS_HEX_LEN = 40  # 20-byte addresses

DEFAULT_DB_PATH = "db/recordgate.db"
DEFAULT_STORAGE_PROVIDER = "sqlite"

# audit event types
EVT_IDENTITY_ISSUED = "identity.issued"
EVT_IDENTITY_REVOKED = "identity.revoked"
EVT_RECORD_ADDED = "record.added"
EVT_ACCESS_GRANTED = "access.granted"
EVT_ACCESS_REVOKED = "access.revoked"
