import pytest

from recordgate_core import (
    AlreadyIssued, IdentityRegistry, InvalidExpiry, NotFound, Unauthorized, ValidationError
)
from recordgate_core.storage import InMemoryStorage

from conftest import ADMIN, P1, P2, DAY, TWO_MONTHS

ATTRS = {"primary_id": "1", "country_code": "nz", "user_type": "patient"}


@pytest.fixture
def registry(storage, clock):
    return IdentityRegistry(storage, [ADMIN], clock)


def test_never_issued_principal_is_not_valid(registry):
    assert not registry.is_valid(P1)
    with pytest.raises(NotFound):
        registry.get_identity(P1)


def test_issue_identity(registry, clock):
    exp = clock.now() + TWO_MONTHS
    ident = registry.issue_identity(ADMIN, P1, ATTRS, exp)

    assert ident.issued_at == clock.now()
    assert registry.is_valid(P1)
    got = registry.get_identity(P1)
    assert got.attributes == ATTRS
    assert got.expires_at == exp
    assert got.revoked is False
    assert registry.get_attribute(P1, "country_code") == "nz"


def test_addresses_are_case_insensitive(registry, clock):
    registry.issue_identity(ADMIN.upper().replace("0X", "0x"), P1, ATTRS, clock.now() + DAY)
    assert registry.is_valid(P1.upper().replace("0X", "0x"))


def test_only_admin_may_issue(registry, clock):
    with pytest.raises(Unauthorized):
        registry.issue_identity(P2, P1, ATTRS, clock.now() + DAY)
    assert not registry.is_valid(P1)


@pytest.mark.parametrize("offset", [0, -1, -DAY])
def test_expiry_must_be_in_the_future(registry, clock, offset):
    with pytest.raises(InvalidExpiry):
        registry.issue_identity(ADMIN, P1, ATTRS, clock.now() + offset)
    with pytest.raises(NotFound):
        registry.get_identity(P1)


def test_stale_expiry_wins_over_other_bad_arguments(registry, clock):
    with pytest.raises(InvalidExpiry):
        registry.issue_identity(ADMIN, P1, {"competency": 5}, clock.now() - 1)
    with pytest.raises(InvalidExpiry):
        registry.issue_identity(ADMIN, "not-an-address", ATTRS, clock.now())


def test_unauthorized_checked_before_expiry(registry, clock):
    with pytest.raises(Unauthorized):
        registry.issue_identity(P2, P1, ATTRS, clock.now() - 1)


def test_attributes_must_be_strings(registry, clock):
    with pytest.raises(ValidationError):
        registry.issue_identity(ADMIN, P1, {"competency": 5}, clock.now() + DAY)


def test_validity_is_time_derived(registry, clock):
    exp = clock.now() + DAY
    registry.issue_identity(ADMIN, P1, ATTRS, exp)

    clock.set(exp - 1)
    assert registry.is_valid(P1)
    clock.set(exp)
    assert not registry.is_valid(P1)
    clock.set(exp + DAY)
    assert not registry.is_valid(P1)
    # expired identities stay on record
    assert registry.get_identity(P1).revoked is False


def test_cannot_reissue_while_valid(registry, clock):
    registry.issue_identity(ADMIN, P1, ATTRS, clock.now() + DAY)
    with pytest.raises(AlreadyIssued):
        registry.issue_identity(ADMIN, P1, {"user_type": "doctor"}, clock.now() + 2 * DAY)
    assert registry.get_identity(P1).attributes == ATTRS


def test_reissue_after_expiry_replaces_record(registry, clock):
    registry.issue_identity(ADMIN, P1, ATTRS, clock.now() + DAY)
    clock.advance(2 * DAY)
    registry.issue_identity(ADMIN, P1, {"user_type": "doctor"}, clock.now() + DAY)

    got = registry.get_identity(P1)
    assert got.issued_at == clock.now()
    assert got.attributes == {"user_type": "doctor"}
    assert registry.is_valid(P1)


def test_revoke_identity(registry, clock):
    registry.issue_identity(ADMIN, P1, ATTRS, clock.now() + DAY)
    registry.revoke_identity(ADMIN, P1)
    assert not registry.is_valid(P1)
    assert registry.get_identity(P1).revoked is True

    # revoking again is accepted
    registry.revoke_identity(ADMIN, P1)

    # a revoked identity can be replaced
    registry.issue_identity(ADMIN, P1, ATTRS, clock.now() + DAY)
    assert registry.is_valid(P1)


def test_revoke_requires_admin_and_existing_identity(registry, clock):
    with pytest.raises(NotFound):
        registry.revoke_identity(ADMIN, P1)

    registry.issue_identity(ADMIN, P1, ATTRS, clock.now() + DAY)
    with pytest.raises(Unauthorized):
        registry.revoke_identity(P1, P1)
    assert registry.is_valid(P1)


def test_admin_set_is_fixed(clock):
    registry = IdentityRegistry(InMemoryStorage(), [ADMIN], clock)
    assert registry.is_admin(ADMIN)
    assert not registry.is_admin(P1)
    assert registry.admins == frozenset([ADMIN])


def test_issue_and_revoke_are_audited(registry, storage, clock):
    registry.issue_identity(ADMIN, P1, ATTRS, clock.now() + DAY)
    registry.revoke_identity(ADMIN, P1)
    events = storage.list_events()
    assert [e.event_type for e in events] == ["identity.issued", "identity.revoked"]
    assert events[0].payload["principal"] == P1
    assert events[0].payload["attribute_keys"] == sorted(ATTRS)
