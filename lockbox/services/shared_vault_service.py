"""
Shared vaults: named vaults with a join password, a member list and one
encrypted blob. Every mutation is a read-modify-write of a single vault
(its row plus its member rows) committed in one transaction.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ..auth_utils import CredentialService, Identity
from ..errors import BadRequest, Forbidden, NotFound
from ..models import MemberStatus, Role, Vault, VaultMember, VaultType
from .access import (
    Access,
    find_bound_member,
    find_pending_member,
    require_member,
    require_owner,
)
from .vault_service import commit_vault, create_vault, touch, validate_blob

logger = logging.getLogger(__name__)

VALID_STATUSES = frozenset(s.value for s in MemberStatus)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_shared_or_404(db: Session, vault_id: Optional[str]) -> Vault:
    """Load a shared vault; personal-type vaults are not visible here."""
    vault = None
    if vault_id:
        vault = (
            db.query(Vault)
            .filter(Vault.id == vault_id, Vault.type == VaultType.SHARED.value)
            .first()
        )
    if not vault:
        raise NotFound("Vault not found")
    return vault


def create_shared_vault(
    db: Session,
    credentials: CredentialService,
    identity: Identity,
    name: Optional[str],
    join_secret: Optional[str],
) -> Vault:
    if not (name or "").strip() or not join_secret:
        raise BadRequest("Missing vaultName or joinPassword")
    return create_vault(db, credentials, identity, name, VaultType.SHARED.value, join_secret)


def invite(db: Session, identity: Identity, vault_id: Optional[str], email: Optional[str]) -> bool:
    """
    Add a pending member for email (owner only). Invite delivery is out of
    scope. Returns False when the email is already listed.
    """
    email = (email or "").strip().lower()
    if not vault_id or not email:
        raise BadRequest("Missing vaultId or email")
    vault = get_shared_or_404(db, vault_id)
    require_owner(vault, identity, "Only owner can invite users")

    if any(m.email.lower() == email for m in vault.members):
        return False
    vault.members.append(
        VaultMember(user_id=None, email=email, role=Role.MEMBER.value, status=MemberStatus.OFFLINE.value)
    )
    touch(vault)
    commit_vault(db, vault.id)
    logger.info("Owner %s invited a member to vault %s", identity.user_id, vault.id)
    return True


def join(
    db: Session,
    credentials: CredentialService,
    identity: Identity,
    vault_id: Optional[str],
    join_secret: Optional[str],
) -> str:
    """
    Join with the vault's password. Returns "rejoined", "bound" (a pending
    invite for the caller's email was claimed) or "joined".
    """
    if not vault_id or not join_secret:
        raise BadRequest("Missing vaultId or password")
    vault = get_shared_or_404(db, vault_id)
    if not credentials.check_secret(join_secret, vault.join_secret_hash):
        logger.warning("Rejected join of vault %s by user %s: wrong password", vault.id, identity.user_id)
        raise Forbidden("Incorrect join password")

    member = find_bound_member(vault, identity.user_id)
    if member is not None:
        outcome = "rejoined"
    else:
        member = find_pending_member(vault, identity.email)
        if member is not None:
            member.user_id = identity.user_id
            outcome = "bound"
        else:
            role = Role.OWNER.value if identity.user_id == vault.owner_id else Role.MEMBER.value
            member = VaultMember(user_id=identity.user_id, email=identity.email, role=role)
            vault.members.append(member)
            outcome = "joined"
    member.status = MemberStatus.ONLINE.value
    member.last_seen_at = _now()
    touch(vault)
    commit_vault(db, vault.id)
    logger.info("User %s %s vault %s", identity.user_id, outcome, vault.id)
    return outcome


def leave(db: Session, identity: Identity, vault_id: Optional[str]) -> bool:
    """Remove the caller. The owner leaving deletes the vault; returns True then."""
    vault = get_shared_or_404(db, vault_id)
    access = require_member(vault, identity)
    if access is Access.OWNER:
        db.delete(vault)
        commit_vault(db, vault.id)
        logger.info("Owner %s left vault %s; vault deleted", identity.user_id, vault_id)
        return True
    vault.members = [m for m in vault.members if m.user_id != identity.user_id]
    touch(vault)
    commit_vault(db, vault.id)
    logger.info("User %s left vault %s", identity.user_id, vault.id)
    return False


def kick(db: Session, identity: Identity, vault_id: Optional[str], target_user_id: Optional[str]) -> None:
    """Owner only. Removes the target's member rows; self-removal goes through leave."""
    if not vault_id or not target_user_id:
        raise BadRequest("Missing vaultId or userId")
    vault = get_shared_or_404(db, vault_id)
    require_owner(vault, identity, "Only owner can kick members")
    vault.members = [m for m in vault.members if m.user_id != target_user_id]
    touch(vault)
    commit_vault(db, vault.id)
    logger.info("Owner %s kicked user %s from vault %s", identity.user_id, target_user_id, vault.id)


def set_status(db: Session, identity: Identity, vault_id: Optional[str], status: Optional[str]) -> None:
    if status not in VALID_STATUSES:
        raise BadRequest("Invalid status value")
    vault = get_shared_or_404(db, vault_id)
    member = find_bound_member(vault, identity.user_id)
    if member is None:
        raise Forbidden("Not a member")
    member.status = status
    member.last_seen_at = _now()
    touch(vault)
    commit_vault(db, vault.id)


def get_metadata(db: Session, identity: Identity, vault_id: Optional[str]) -> Vault:
    """Vault with its members, for callers that are owner or member. Blob excluded by the route."""
    vault = get_shared_or_404(db, vault_id)
    require_member(vault, identity)
    return vault


def get_blob(db: Session, identity: Identity, vault_id: Optional[str]) -> Optional[dict]:
    vault = get_shared_or_404(db, vault_id)
    require_member(vault, identity)
    return vault.blob


def save_blob(db: Session, identity: Identity, vault_id: Optional[str], ct: Optional[str], iv: Optional[str]) -> None:
    validate_blob(ct, iv)
    vault = get_shared_or_404(db, vault_id)
    require_member(vault, identity)
    vault.ct = ct
    vault.iv = iv
    touch(vault)
    commit_vault(db, vault.id)
