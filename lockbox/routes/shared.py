"""Shared vault routes: create, invite, join, leave, kick, status, metadata, blob."""
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth_utils import CredentialService, Identity
from ..database import get_db
from ..routes.auth import get_credentials, get_current_identity
from ..schemas import Blob, BlobResponse, CamelModel, OkResponse
from ..services import shared_vault_service as shared

router = APIRouter(prefix="/api/shared", tags=["shared"])


class CreateSharedRequest(CamelModel):
    vault_name: str | None = None
    join_password: str | None = None


class CreateSharedResponse(CamelModel):
    ok: bool = True
    vault_id: str


class InviteRequest(CamelModel):
    vault_id: str | None = None
    email: str | None = None


class JoinRequest(CamelModel):
    vault_id: str | None = None
    password: str | None = None


class VaultRef(CamelModel):
    vault_id: str | None = None


class KickRequest(CamelModel):
    vault_id: str | None = None
    user_id: str | None = None


class StatusRequest(CamelModel):
    vault_id: str | None = None
    status: str | None = None


class LeaveResponse(CamelModel):
    ok: bool = True
    deleted: bool = False


class MemberOut(CamelModel):
    user_id: str | None  # null while the invite is pending
    email: str
    role: str
    status: str
    pending: bool
    last_seen_at: datetime | None = None


class VaultInfoResponse(CamelModel):
    vault_name: str
    owner: str
    members: list[MemberOut]


@router.post("/create", response_model=CreateSharedResponse)
def create_shared_vault(
    body: CreateSharedRequest,
    identity: Identity = Depends(get_current_identity),
    credentials: CredentialService = Depends(get_credentials),
    db: Session = Depends(get_db),
):
    vault = shared.create_shared_vault(db, credentials, identity, body.vault_name, body.join_password)
    return CreateSharedResponse(vault_id=vault.id)


@router.post("/invite", response_model=OkResponse, response_model_exclude_none=True)
def invite_member(body: InviteRequest, identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    """Add an email-only pending member. Delivering the invite is up to the client."""
    if not shared.invite(db, identity, body.vault_id, body.email):
        return OkResponse(message="User already exists or pending")
    return OkResponse()


@router.post("/join", response_model=OkResponse, response_model_exclude_none=True)
def join_vault(
    body: JoinRequest,
    request: Request,
    identity: Identity = Depends(get_current_identity),
    credentials: CredentialService = Depends(get_credentials),
    db: Session = Depends(get_db),
):
    settings = request.app.state.settings
    request.app.state.rate_limiter.check(
        f"join:{identity.user_id}:{body.vault_id}",
        settings.rate_limit_join_per_minute,
    )
    outcome = shared.join(db, credentials, identity, body.vault_id, body.password)
    if outcome == "rejoined":
        return OkResponse(message="Already a member")
    return OkResponse()


@router.post("/leave", response_model=LeaveResponse)
def leave_vault(body: VaultRef, identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    """Leave the vault. If the owner leaves, the vault is deleted."""
    return LeaveResponse(deleted=shared.leave(db, identity, body.vault_id))


@router.post("/kick", response_model=OkResponse, response_model_exclude_none=True)
def kick_member(body: KickRequest, identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    shared.kick(db, identity, body.vault_id, body.user_id)
    return OkResponse()


@router.post("/status", response_model=OkResponse, response_model_exclude_none=True)
def update_status(body: StatusRequest, identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    shared.set_status(db, identity, body.vault_id, body.status)
    return OkResponse()


@router.get("/{vault_id}", response_model=VaultInfoResponse)
def vault_info(vault_id: str, identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    """Name, owner and members (no encrypted data). Members only."""
    vault = shared.get_metadata(db, identity, vault_id)
    return VaultInfoResponse(
        vault_name=vault.name,
        owner=vault.owner_id,
        members=[
            MemberOut(
                user_id=m.user_id,
                email=m.email,
                role=m.role,
                status=m.status,
                pending=m.is_pending,
                last_seen_at=m.last_seen_at,
            )
            for m in vault.members
        ],
    )


@router.get("/{vault_id}/data", response_model=BlobResponse)
def vault_data(vault_id: str, identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    return BlobResponse(vault=shared.get_blob(db, identity, vault_id))


@router.post("/{vault_id}/save", response_model=OkResponse, response_model_exclude_none=True)
def save_vault_data(
    vault_id: str,
    body: Blob,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    shared.save_blob(db, identity, vault_id, body.ct, body.iv)
    return OkResponse()
