import pytest

from recordgate_core import FixedClock, Ledger
from recordgate_core.storage import InMemoryStorage, SQLiteStorage

ADMIN = "0x" + "a0" * 20
P1 = "0x" + "11" * 20
P2 = "0x" + "22" * 20
P3 = "0x" + "33" * 20

DAY = 24 * 60 * 60
TWO_MONTHS = 61 * DAY


@pytest.fixture
def clock():
    return FixedClock(1_700_000_000)


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    if request.param == "memory":
        s = InMemoryStorage()
    else:
        s = SQLiteStorage(str(tmp_path / "recordgate.db"))
    yield s
    s.close()


@pytest.fixture
def ledger(storage, clock):
    return Ledger([ADMIN], storage=storage, clock=clock)
