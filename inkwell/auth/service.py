
from sqlalchemy import select
from sqlalchemy.orm import Session
from inkwell.models.user import User
from inkwell.rpc.errors import ErrorType, RPCError, conflict
from inkwell.utils.security import (
    Identity,
    burn_password_check,
    create_access_token,
    hash_password,
    verify_password,
)

AUTHOR_PERMISSIONS = ("posts:create", "posts:update", "posts:delete")
ROLE_PERMISSIONS = {
    "author": AUTHOR_PERMISSIONS,
    "admin": AUTHOR_PERMISSIONS + ("categories:manage", "users:manage"),
}

INVALID_CREDENTIALS = "Invalid email or password"

def identity_for(user: User) -> Identity:
    role = user.role or "author"
    return Identity(
        id=user.id,
        email=user.email,
        name=user.name,
        permissions=ROLE_PERMISSIONS.get(role, ()),
        roles=(role,),
    )

def issue_token(user: User) -> str:
    return create_access_token(identity_for(user))

def find_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()

def register_user(db: Session, name: str, email: str, password: str) -> User:
    if find_user_by_email(db, email):
        raise conflict("user", "email", email)
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role="author",
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def authenticate(db: Session, email: str, password: str) -> User:
    """Check credentials, returning the user or raising UNAUTHORIZED.

    Unknown email and wrong password fail with the same message.
    Accounts stored without a password hash log in without one.
    """
    user = find_user_by_email(db, email)
    if user is None:
        burn_password_check(password)
        raise RPCError(ErrorType.UNAUTHORIZED, INVALID_CREDENTIALS)

    if not user.is_active:
        raise RPCError(ErrorType.FORBIDDEN, "Your account has been deactivated")

    if user.password_hash is None:
        return user

    if not verify_password(password, user.password_hash):
        raise RPCError(ErrorType.UNAUTHORIZED, INVALID_CREDENTIALS)
    return user
