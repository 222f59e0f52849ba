"""
Vault record store: the personal vault blob kept on the user record, and
typed multi-vaults (personal or shared) owned by one user.

Blobs are opaque {ct, iv} strings; a save overwrites the whole blob.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..auth_utils import CredentialService, Identity
from ..errors import BadRequest, Conflict, NotFound
from ..models import MemberStatus, Role, User, Vault, VaultMember, VaultType
from .access import require_member

logger = logging.getLogger(__name__)

DEFAULT_VAULT_NAME = "New Vault"


def validate_blob(ct: Optional[str], iv: Optional[str]) -> None:
    if not ct or not iv:
        raise BadRequest("Missing ct or iv")


def touch(vault: Vault) -> None:
    """Mark the vault row dirty so the flush bumps its revision even for member-only edits."""
    vault.updated_at = datetime.now(timezone.utc)


def commit_vault(db: Session, vault_id: str) -> None:
    """Commit one vault read-modify-write; a stale revision becomes Conflict."""
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning("Concurrent modification of vault %s rejected", vault_id)
        raise Conflict("Vault was modified concurrently; reload and retry")


# --- Personal vault (one per user) ---

def _user_or_404(db: Session, identity: Identity) -> User:
    user = db.query(User).filter(User.id == identity.user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


def get_personal_vault(db: Session, identity: Identity) -> Optional[dict]:
    return _user_or_404(db, identity).personal_vault


def save_personal_vault(db: Session, identity: Identity, ct: Optional[str], iv: Optional[str]) -> None:
    validate_blob(ct, iv)
    user = _user_or_404(db, identity)
    user.vault_ct = ct
    user.vault_iv = iv
    db.commit()


def reset_personal_vault(db: Session, identity: Identity) -> None:
    """Irreversibly clear the personal blob (user lost their master key)."""
    user = _user_or_404(db, identity)
    user.vault_ct = None
    user.vault_iv = None
    db.commit()
    logger.info("Personal vault reset for user %s", user.id)


# --- Multi-vault ---

def get_vault_or_404(db: Session, vault_id: str) -> Vault:
    vault = db.query(Vault).filter(Vault.id == vault_id).first() if vault_id else None
    if not vault:
        raise NotFound("Vault not found")
    return vault


def list_vaults(db: Session, identity: Identity) -> List[Vault]:
    """Vaults the caller owns or is a bound member of."""
    member_of = db.query(VaultMember.vault_id).filter(VaultMember.user_id == identity.user_id)
    return (
        db.query(Vault)
        .filter(or_(Vault.owner_id == identity.user_id, Vault.id.in_(member_of)))
        .order_by(Vault.created_at.desc(), Vault.name)
        .all()
    )


def create_vault(
    db: Session,
    credentials: CredentialService,
    identity: Identity,
    name: Optional[str] = None,
    vault_type: Optional[str] = None,
    join_secret: Optional[str] = None,
) -> Vault:
    """
    Create a vault owned by the caller. Shared vaults need a join secret,
    stored only as a bcrypt hash, and start with the owner as sole member.
    """
    vault_type = vault_type or VaultType.PERSONAL.value
    if vault_type not in (VaultType.PERSONAL.value, VaultType.SHARED.value):
        raise BadRequest("type must be 'personal' or 'shared'")
    name = (name or "").strip() or DEFAULT_VAULT_NAME

    vault = Vault(id=str(uuid.uuid4()), owner_id=identity.user_id, name=name, type=vault_type)
    if vault_type == VaultType.SHARED.value:
        if not join_secret:
            raise BadRequest("Join password required for a shared vault")
        vault.join_secret_hash = credentials.hash_secret(join_secret)
        vault.members.append(
            VaultMember(
                user_id=identity.user_id,
                email=identity.email,
                role=Role.OWNER.value,
                status=MemberStatus.ONLINE.value,
                last_seen_at=datetime.now(timezone.utc),
            )
        )
    db.add(vault)
    db.commit()
    db.refresh(vault)
    logger.info("User %s created %s vault %s", identity.user_id, vault_type, vault.id)
    return vault


def get_vault_blob(db: Session, vault_id: str, identity: Identity) -> Optional[dict]:
    vault = get_vault_or_404(db, vault_id)
    require_member(vault, identity, "Not allowed")
    return vault.blob


def save_vault_blob(db: Session, vault_id: str, identity: Identity, ct: Optional[str], iv: Optional[str]) -> None:
    validate_blob(ct, iv)
    vault = get_vault_or_404(db, vault_id)
    require_member(vault, identity, "Not allowed")
    vault.ct = ct
    vault.iv = iv
    touch(vault)
    commit_vault(db, vault.id)
