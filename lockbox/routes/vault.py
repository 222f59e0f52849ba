"""
Vault API: the caller's personal vault blob (/api/vault) and typed
multi-vaults (/api/vaults). Blobs are client-encrypted; stored verbatim.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth_utils import CredentialService, Identity
from ..database import get_db
from ..routes.auth import get_credentials, get_current_identity
from ..schemas import Blob, BlobResponse, CamelModel, OkResponse
from ..services import vault_service

router = APIRouter(prefix="/api/vault", tags=["vault"])
router_vaults = APIRouter(prefix="/api/vaults", tags=["vaults"])


# --- Personal vault ---

@router.get("", response_model=BlobResponse)
def get_personal_vault(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    """Return the caller's encrypted vault, or null if never saved."""
    return BlobResponse(vault=vault_service.get_personal_vault(db, identity))


@router.post("", response_model=OkResponse, response_model_exclude_none=True)
def save_personal_vault(
    body: Blob,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    vault_service.save_personal_vault(db, identity, body.ct, body.iv)
    return OkResponse()


@router.post("/reset", response_model=OkResponse, response_model_exclude_none=True)
def reset_personal_vault(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    """Clear the vault when the user has forgotten their master password."""
    vault_service.reset_personal_vault(db, identity)
    return OkResponse()


# --- Multi-vault ---

class CreateVaultRequest(CamelModel):
    name: str | None = None
    type: str | None = None
    join_password: str | None = None


class VaultSummary(CamelModel):
    id: str
    name: str
    type: str
    owner_id: str


class VaultListResponse(CamelModel):
    vaults: list[VaultSummary]


class CreateVaultResponse(CamelModel):
    vault: VaultSummary


def _summary(v) -> VaultSummary:
    return VaultSummary(id=v.id, name=v.name, type=v.type, owner_id=v.owner_id)


@router_vaults.get("", response_model=VaultListResponse)
def list_vaults(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    """List all vaults the caller owns or is a member of. No blobs, no secrets."""
    return VaultListResponse(vaults=[_summary(v) for v in vault_service.list_vaults(db, identity)])


@router_vaults.post("/create", response_model=CreateVaultResponse)
def create_vault(
    body: CreateVaultRequest,
    identity: Identity = Depends(get_current_identity),
    credentials: CredentialService = Depends(get_credentials),
    db: Session = Depends(get_db),
):
    v = vault_service.create_vault(db, credentials, identity, body.name, body.type, body.join_password)
    return CreateVaultResponse(vault=_summary(v))


@router_vaults.get("/{vault_id}", response_model=BlobResponse)
def get_vault(vault_id: str, identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    return BlobResponse(vault=vault_service.get_vault_blob(db, vault_id, identity))


@router_vaults.post("/{vault_id}/save", response_model=OkResponse, response_model_exclude_none=True)
def save_vault(
    vault_id: str,
    body: Blob,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    vault_service.save_vault_blob(db, vault_id, identity, body.ct, body.iv)
    return OkResponse()
