"""Auth: bcrypt password hashing, JWT issue/verify, register and login."""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional, Tuple

import bcrypt
import jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import Settings
from .errors import BadRequest, Conflict, NotFound, Unauthorized
from .models import User

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class Identity(NamedTuple):
    """Claims carried by a verified bearer token."""
    user_id: str
    email: str


class CredentialService:
    """
    Password hashing and bearer tokens.
    Secret, algorithm, expiry and bcrypt cost all come from Settings.
    """

    def __init__(self, settings: Settings):
        self._secret = settings.jwt_secret
        self._algorithm = settings.jwt_algorithm
        self._expire_days = settings.jwt_expire_days
        self._rounds = settings.bcrypt_rounds
        # Compared against when the email is unknown so login timing stays uniform
        self._dummy_hash = self.hash_secret("lockbox-dummy-password")

    # --- hashing ---

    def hash_secret(self, secret: str) -> str:
        return bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds)).decode("ascii")

    def check_secret(self, secret: str, hashed: Optional[str]) -> bool:
        if not secret or not hashed:
            return False
        try:
            return bcrypt.checkpw(secret.encode("utf-8"), hashed.encode("ascii"))
        except ValueError:
            # Malformed stored hash
            logger.warning("Stored bcrypt hash could not be parsed")
            return False

    # --- tokens ---

    def issue_token(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        return jwt.encode(
            {
                "sub": user.id,
                "userId": user.id,
                "email": user.email,
                "iat": now,
                "exp": now + timedelta(days=self._expire_days),
            },
            self._secret,
            algorithm=self._algorithm,
        )

    def verify(self, token: str) -> Identity:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Token expired")
        except jwt.PyJWTError:
            raise Unauthorized("Invalid token")
        user_id = payload.get("userId") or payload.get("sub")
        email = payload.get("email")
        if not user_id or not email:
            raise Unauthorized("Invalid token")
        return Identity(user_id=str(user_id), email=email)

    # --- accounts ---

    def register(self, db: Session, email: Optional[str], password: Optional[str], salt: Optional[str]) -> Tuple[str, User]:
        email = (email or "").strip().lower()
        if not email or not password or not salt:
            raise BadRequest("email, password, and salt are required")
        if db.query(User).filter(User.email == email).first():
            raise Conflict("Account already exists")
        user = User(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=self.hash_secret(password),
            salt=salt,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same email
            db.rollback()
            raise Conflict("Account already exists")
        db.refresh(user)
        logger.info("Registered user %s", user.id)
        return self.issue_token(user), user

    def login(self, db: Session, email: Optional[str], password: Optional[str]) -> Tuple[str, User]:
        email = (email or "").strip().lower()
        user = db.query(User).filter(User.email == email).first() if email else None
        if user is None:
            self.check_secret(password or "", self._dummy_hash)
            logger.info("Failed login for unknown account")
            raise Unauthorized(INVALID_CREDENTIALS)
        if not self.check_secret(password or "", user.password_hash):
            logger.info("Failed login for user %s", user.id)
            raise Unauthorized(INVALID_CREDENTIALS)
        return self.issue_token(user), user

    def me(self, db: Session, identity: Identity) -> User:
        user = db.query(User).filter(User.id == identity.user_id).first()
        if not user:
            raise NotFound("User not found")
        return user
