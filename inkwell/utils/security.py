
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from passlib.context import CryptContext
from jose import jwt, ExpiredSignatureError, JWTError
from inkwell.config import settings

ALGORITHM = "HS256"

pwd_context = CryptContext(
    schemes=["bcrypt_sha256", "bcrypt"],
    deprecated="auto",
    bcrypt_sha256__rounds=settings.password_hash_rounds,
    bcrypt__rounds=settings.password_hash_rounds,
)

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)

@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return pwd_context.hash("inkwell-timing-equalizer")

def burn_password_check(password: str) -> None:
    """Spend the same hashing work as a real check, for unknown accounts."""
    pwd_context.verify(password, _dummy_hash())


@dataclass(frozen=True)
class Identity:
    id: int
    email: str
    name: str | None = None
    permissions: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def has_role(self, role: str) -> bool:
        return role in self.roles

    @property
    def is_admin(self) -> bool:
        return self.has_role("admin") or self.has_permission("admin:*")


@dataclass(frozen=True)
class Verified:
    identity: Identity
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class Rejected:
    reason: str
    details: dict = field(default_factory=dict)


TokenVerification = Verified | Rejected


def create_access_token(identity: Identity, expires_minutes: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    minutes = settings.access_token_expire_minutes if expires_minutes is None else expires_minutes
    to_encode = {
        "sub": str(identity.id),
        "email": identity.email,
        "name": identity.name,
        "permissions": list(identity.permissions),
        "roles": list(identity.roles),
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)

def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])

def verify_access_token(token: str) -> TokenVerification:
    try:
        payload = decode_token(token)
    except ExpiredSignatureError:
        return Rejected("Authentication token has expired", {"tokenExpired": True})
    except JWTError:
        return Rejected("Invalid authentication token", {"invalidToken": True})

    try:
        identity = Identity(
            id=int(payload["sub"]),
            email=payload["email"],
            name=payload.get("name"),
            permissions=tuple(payload.get("permissions") or ()),
            roles=tuple(payload.get("roles") or ()),
        )
        return Verified(
            identity=identity,
            issued_at=datetime.fromtimestamp(payload.get("iat", 0), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError):
        return Rejected("Malformed authentication token", {"invalidToken": True})
