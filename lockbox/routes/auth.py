"""Auth routes: register, login, me; plus the bearer-token dependency."""
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from ..auth_utils import CredentialService, Identity
from ..database import get_db
from ..errors import Unauthorized
from ..schemas import CamelModel

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(CamelModel):
    email: str | None = None
    password: str | None = None
    salt: str | None = None


class LoginRequest(CamelModel):
    email: str | None = None
    password: str | None = None


class UserInfo(CamelModel):
    email: str
    salt: str


class AuthResponse(CamelModel):
    token: str
    user: UserInfo


class MeResponse(CamelModel):
    id: str
    email: str
    salt: str


def get_credentials(request: Request) -> CredentialService:
    return request.app.state.credentials


def get_current_identity(
    authorization: str | None = Header(None, alias="Authorization"),
    credentials: CredentialService = Depends(get_credentials),
) -> Identity:
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Missing token")
    token = authorization.split(" ", 1)[1].strip()
    return credentials.verify(token)


@router.post("/register", response_model=AuthResponse)
def register(
    body: RegisterRequest,
    credentials: CredentialService = Depends(get_credentials),
    db: Session = Depends(get_db),
):
    token, user = credentials.register(db, body.email, body.password, body.salt)
    return AuthResponse(token=token, user=UserInfo(email=user.email, salt=user.salt))


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    request: Request,
    credentials: CredentialService = Depends(get_credentials),
    db: Session = Depends(get_db),
):
    settings = request.app.state.settings
    request.app.state.rate_limiter.check(
        f"login:{(body.email or '').strip().lower()}",
        settings.rate_limit_login_per_minute,
    )
    token, user = credentials.login(db, body.email, body.password)
    return AuthResponse(token=token, user=UserInfo(email=user.email, salt=user.salt))


@router.get("/me", response_model=MeResponse)
def auth_me(
    identity: Identity = Depends(get_current_identity),
    credentials: CredentialService = Depends(get_credentials),
    db: Session = Depends(get_db),
):
    user = credentials.me(db, identity)
    return MeResponse(id=user.id, email=user.email, salt=user.salt)
