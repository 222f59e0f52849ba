"""SQLAlchemy models for users, vaults and vault members."""
from enum import Enum

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class VaultType(str, Enum):
    PERSONAL = "personal"
    SHARED = "shared"


class Role(str, Enum):
    OWNER = "owner"
    MEMBER = "member"


class MemberStatus(str, Enum):
    ONLINE = "online"
    IDLE = "idle"
    OFFLINE = "offline"


class User(Base):
    __tablename__ = "users"
    id = Column(String(64), primary_key=True)  # uuid
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(128), nullable=False)  # bcrypt
    salt = Column(String(256), nullable=False)  # client-side key derivation salt, opaque here
    # Personal vault blob; both null until first save or after reset
    vault_ct = Column(Text, nullable=True)
    vault_iv = Column(String(256), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def personal_vault(self):
        if self.vault_ct is None or self.vault_iv is None:
            return None
        return {"ct": self.vault_ct, "iv": self.vault_iv}


class Vault(Base):
    __tablename__ = "vaults"
    id = Column(String(64), primary_key=True)  # uuid
    owner_id = Column(String(64), nullable=False, index=True)  # users.id, weak reference
    name = Column(String(256), nullable=False)
    type = Column(String(16), nullable=False, default=VaultType.PERSONAL.value)
    join_secret_hash = Column(String(128), nullable=True)  # bcrypt, shared vaults only
    ct = Column(Text, nullable=True)
    iv = Column(String(256), nullable=True)
    revision = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    members = relationship(
        "VaultMember",
        back_populates="vault",
        cascade="all, delete-orphan",
        order_by="VaultMember.id",
    )

    # Every UPDATE checks and bumps revision; a stale write raises StaleDataError
    __mapper_args__ = {"version_id_col": revision}

    @property
    def is_shared(self) -> bool:
        return self.type == VaultType.SHARED.value

    @property
    def blob(self):
        if self.ct is None or self.iv is None:
            return None
        return {"ct": self.ct, "iv": self.iv}


class VaultMember(Base):
    """
    One entry of a vault's member list.
    Pending while user_id is null (email-only invite), bound once the user joins.
    """
    __tablename__ = "vault_members"
    __table_args__ = (UniqueConstraint("vault_id", "user_id", name="uq_vault_member_user"),)
    id = Column(Integer, primary_key=True, autoincrement=True)
    vault_id = Column(String(64), ForeignKey("vaults.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=True)
    email = Column(String(256), nullable=False)
    role = Column(String(16), nullable=False, default=Role.MEMBER.value)
    status = Column(String(16), nullable=False, default=MemberStatus.OFFLINE.value)
    last_seen_at = Column(DateTime(timezone=True), nullable=True)

    vault = relationship("Vault", back_populates="members")

    @property
    def is_pending(self) -> bool:
        return self.user_id is None
