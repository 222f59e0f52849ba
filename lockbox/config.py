"""App configuration from environment."""
import os
from pathlib import Path
from typing import NamedTuple, Optional

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent.parent


class Settings(NamedTuple):
    """Everything the app needs at construction; passed into create_app."""
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7
    bcrypt_rounds: int = 12
    cors_origins: tuple = ()
    log_level: str = "INFO"
    # Rate limits (per key): attempts per window
    rate_limit_login_per_minute: int = 10
    rate_limit_join_per_minute: int = 10
    rate_limit_window_seconds: float = 60


def _cors_origins(raw: str) -> tuple:
    return tuple(p.strip() for p in raw.split(",") if p.strip())


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Read LOCKBOX_* variables (after loading .env) into Settings."""
    load_dotenv(str(env_file or ROOT_DIR / ".env"))

    database_url = os.environ.get("LOCKBOX_DATABASE_URL")
    if not database_url:
        data_dir = ROOT_DIR / "data"
        data_dir.mkdir(parents=True, exist_ok=True)
        database_url = f"sqlite:///{data_dir / 'lockbox.db'}"

    rounds = int(os.environ.get("LOCKBOX_BCRYPT_ROUNDS", 12))
    # bcrypt rejects cost factors outside 4..31
    rounds = min(max(rounds, 4), 31)

    return Settings(
        database_url=database_url,
        jwt_secret=os.environ.get("LOCKBOX_JWT_SECRET", "jwt-secret-change-in-production"),
        jwt_algorithm=os.environ.get("LOCKBOX_JWT_ALGORITHM", "HS256"),
        jwt_expire_days=int(os.environ.get("LOCKBOX_JWT_EXPIRE_DAYS", 7)),
        bcrypt_rounds=rounds,
        cors_origins=_cors_origins(
            os.environ.get(
                "LOCKBOX_CORS_ORIGINS",
                "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173,http://127.0.0.1:3000",
            )
        ),
        log_level=os.environ.get("LOCKBOX_LOG_LEVEL", "INFO").upper(),
        rate_limit_login_per_minute=int(os.environ.get("LOCKBOX_RATE_LIMIT_LOGIN", 10)),
        rate_limit_join_per_minute=int(os.environ.get("LOCKBOX_RATE_LIMIT_JOIN", 10)),
    )
