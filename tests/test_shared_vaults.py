"""
Shared vault membership and access control, exercised at the service layer.
"""
import pytest

from lockbox.database import make_session_factory
from lockbox.errors import BadRequest, Conflict, Forbidden, NotFound
from lockbox.models import Vault
from lockbox.services import shared_vault_service as shared
from lockbox.services import vault_service
from lockbox.services.access import Access, resolve_access

JOIN = "team-join-secret"


@pytest.fixture
def owner(make_user):
    return make_user("owner@example.com")


@pytest.fixture
def bob(make_user):
    return make_user("bob@example.com")


@pytest.fixture
def vault(db, credentials, owner):
    return shared.create_shared_vault(db, credentials, owner, "Team", JOIN)


def _members(vault):
    return [(m.user_id, m.email, m.role, m.status) for m in vault.members]


def test_creator_is_sole_online_owner(vault, owner):
    assert vault.owner_id == owner.user_id
    assert _members(vault) == [(owner.user_id, owner.email, "owner", "online")]
    assert resolve_access(vault, owner) is Access.OWNER


def test_join_secret_is_hashed(vault):
    assert vault.join_secret_hash
    assert vault.join_secret_hash != JOIN


def test_create_requires_name_and_secret(db, credentials, owner):
    with pytest.raises(BadRequest):
        shared.create_shared_vault(db, credentials, owner, "", JOIN)
    with pytest.raises(BadRequest):
        shared.create_shared_vault(db, credentials, owner, "Team", "")


def test_join_binds_pending_invite(db, credentials, vault, owner, bob):
    assert shared.invite(db, owner, vault.id, "Bob@Example.com") is True
    pending = vault.members[-1]
    assert pending.is_pending and pending.status == "offline"
    assert resolve_access(vault, bob) is Access.NOT_MEMBER

    assert shared.join(db, credentials, bob, vault.id, JOIN) == "bound"
    assert len(vault.members) == 2
    assert _members(vault)[-1] == (bob.user_id, "bob@example.com", "member", "online")
    assert resolve_access(vault, bob) is Access.MEMBER


def test_rejoin_is_idempotent(db, credentials, vault, bob):
    assert shared.join(db, credentials, bob, vault.id, JOIN) == "joined"
    shared.set_status(db, bob, vault.id, "idle")
    assert shared.join(db, credentials, bob, vault.id, JOIN) == "rejoined"
    bound = [m for m in vault.members if m.user_id == bob.user_id]
    assert len(bound) == 1
    assert bound[0].status == "online"


def test_join_with_wrong_secret_changes_nothing(db, credentials, vault, owner, bob):
    shared.invite(db, owner, vault.id, bob.email)
    before = _members(vault)
    with pytest.raises(Forbidden):
        shared.join(db, credentials, bob, vault.id, "wrong")
    db.expire_all()
    assert _members(db.get(Vault, vault.id)) == before


def test_join_unknown_vault(db, credentials, bob):
    with pytest.raises(NotFound):
        shared.join(db, credentials, bob, "no-such-vault", JOIN)


def test_invite_is_owner_only(db, credentials, vault, bob):
    shared.join(db, credentials, bob, vault.id, JOIN)
    with pytest.raises(Forbidden):
        shared.invite(db, bob, vault.id, "carol@example.com")


def test_invite_existing_email_is_noop(db, vault, owner):
    assert shared.invite(db, owner, vault.id, "carol@example.com") is True
    assert shared.invite(db, owner, vault.id, "carol@example.com") is False
    assert shared.invite(db, owner, vault.id, owner.email) is False
    assert len(vault.members) == 2


def test_owner_leave_deletes_vault(db, credentials, vault, owner, bob):
    vault_id = vault.id
    shared.join(db, credentials, bob, vault_id, JOIN)
    assert shared.leave(db, owner, vault_id) is True
    with pytest.raises(NotFound):
        shared.get_metadata(db, bob, vault_id)


def test_member_leave_removes_only_them(db, credentials, vault, owner, bob):
    shared.join(db, credentials, bob, vault.id, JOIN)
    assert shared.leave(db, bob, vault.id) is False
    assert [m.user_id for m in vault.members] == [owner.user_id]
    with pytest.raises(Forbidden):
        shared.get_blob(db, bob, vault.id)


def test_leave_requires_membership(db, vault, bob):
    with pytest.raises(Forbidden):
        shared.leave(db, bob, vault.id)


def test_kick_by_non_owner_is_rejected(db, credentials, make_user, vault, owner, bob):
    carol = make_user("carol@example.com")
    shared.join(db, credentials, bob, vault.id, JOIN)
    shared.join(db, credentials, carol, vault.id, JOIN)
    before = _members(vault)
    with pytest.raises(Forbidden):
        shared.kick(db, bob, vault.id, carol.user_id)
    assert _members(vault) == before


def test_owner_kicks_member(db, credentials, vault, owner, bob):
    shared.join(db, credentials, bob, vault.id, JOIN)
    shared.kick(db, owner, vault.id, bob.user_id)
    assert resolve_access(vault, bob) is Access.NOT_MEMBER
    assert [m.user_id for m in vault.members] == [owner.user_id]


def test_status_update(db, credentials, vault, bob):
    shared.join(db, credentials, bob, vault.id, JOIN)
    shared.set_status(db, bob, vault.id, "idle")
    assert [m.status for m in vault.members if m.user_id == bob.user_id] == ["idle"]


def test_invalid_status_never_mutates(db, credentials, vault, bob):
    shared.join(db, credentials, bob, vault.id, JOIN)
    for value in ("away", "", None, "ONLINE"):
        with pytest.raises(BadRequest):
            shared.set_status(db, bob, vault.id, value)
    assert [m.status for m in vault.members if m.user_id == bob.user_id] == ["online"]


def test_status_requires_membership(db, vault, bob):
    with pytest.raises(Forbidden):
        shared.set_status(db, bob, vault.id, "idle")


def test_metadata_requires_membership(db, vault, owner, bob):
    assert shared.get_metadata(db, owner, vault.id).name == "Team"
    with pytest.raises(Forbidden):
        shared.get_metadata(db, bob, vault.id)


def test_blob_save_and_read(db, credentials, vault, owner, bob):
    assert shared.get_blob(db, owner, vault.id) is None
    with pytest.raises(Forbidden):
        shared.save_blob(db, bob, vault.id, "ct", "iv")
    shared.join(db, credentials, bob, vault.id, JOIN)
    shared.save_blob(db, bob, vault.id, "U2FsdGVk+/=", "aXYtMTI=")
    assert shared.get_blob(db, owner, vault.id) == {"ct": "U2FsdGVk+/=", "iv": "aXYtMTI="}


def test_empty_blob_does_not_overwrite(db, vault, owner):
    shared.save_blob(db, owner, vault.id, "ct-1", "iv-1")
    with pytest.raises(BadRequest):
        shared.save_blob(db, owner, vault.id, "", "iv-2")
    with pytest.raises(BadRequest):
        shared.save_blob(db, owner, vault.id, "ct-2", None)
    assert shared.get_blob(db, owner, vault.id) == {"ct": "ct-1", "iv": "iv-1"}


def test_personal_type_vault_is_not_shared(db, credentials, owner):
    personal = vault_service.create_vault(db, credentials, owner, "Mine", "personal")
    with pytest.raises(NotFound):
        shared.get_metadata(db, owner, personal.id)


def test_stale_write_is_a_conflict(db, vault, owner):
    # Second session reads the vault, then the first one changes it underneath
    other = make_session_factory(db.get_bind())()
    try:
        stale = other.get(Vault, vault.id)
        assert stale.revision == vault.revision

        shared.invite(db, owner, vault.id, "carol@example.com")

        stale.ct, stale.iv = "ct", "iv"
        vault_service.touch(stale)
        with pytest.raises(Conflict):
            vault_service.commit_vault(other, stale.id)
    finally:
        other.close()


def test_owner_rejoining_after_self_kick_keeps_owner_role(db, credentials, vault, owner):
    shared.kick(db, owner, vault.id, owner.user_id)
    assert vault.members == []

    assert shared.join(db, credentials, owner, vault.id, JOIN) == "joined"
    assert _members(vault) == [(owner.user_id, owner.email, "owner", "online")]
