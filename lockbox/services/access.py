"""
Access control for vaults.

An identity is the vault's OWNER (owner_id matches), a MEMBER (its user id
is bound on one of the member rows) or NOT_MEMBER. Pending invites carry no
user id and so grant nothing until the invitee joins.
"""
from enum import Enum
from typing import Optional

from ..auth_utils import Identity
from ..errors import Forbidden
from ..models import Vault, VaultMember


class Access(str, Enum):
    OWNER = "owner"
    MEMBER = "member"
    NOT_MEMBER = "not_member"


def find_bound_member(vault: Vault, user_id: str) -> Optional[VaultMember]:
    for m in vault.members:
        if m.user_id is not None and m.user_id == user_id:
            return m
    return None


def find_pending_member(vault: Vault, email: str) -> Optional[VaultMember]:
    email = email.lower()
    for m in vault.members:
        if m.user_id is None and m.email.lower() == email:
            return m
    return None


def resolve_access(vault: Vault, identity: Identity) -> Access:
    if vault.owner_id == identity.user_id:
        return Access.OWNER
    if find_bound_member(vault, identity.user_id) is not None:
        return Access.MEMBER
    return Access.NOT_MEMBER


def require_owner(vault: Vault, identity: Identity, message: str = "Only the owner can do this") -> None:
    if resolve_access(vault, identity) is not Access.OWNER:
        raise Forbidden(message)


def require_member(vault: Vault, identity: Identity, message: str = "Not a member") -> Access:
    """Owner or bound member; returns the resolved access."""
    access = resolve_access(vault, identity)
    if access is Access.NOT_MEMBER:
        raise Forbidden(message)
    return access
