
import hashlib
import re
from sqlalchemy import select, delete as sql_delete
from inkwell.auth.service import find_user_by_email
from inkwell.logging_config import get_logger
from inkwell.models.user import User
from inkwell.rpc.errors import ErrorType, RPCError
from inkwell.rpc.middleware import require_owner, require_role
from inkwell.rpc.procedures import RPCRouter
from inkwell.schemas.common import Id
from inkwell.schemas.user import AuthorIn, EmailIn, UserOut, UserUpdate

logger = get_logger(__name__)

router = RPCRouter("users")

AUTHOR_EMAIL_DOMAIN = "authors.blog"

is_self = require_owner(lambda ctx, body: ctx.db.get(User, body.id), lambda user: user.id, entity="User")

def derived_author_email(name: str) -> str:
    """Map a display name to a stable address, distinct names to distinct addresses.

    Names that do not reduce losslessly to ASCII carry a digest of the
    full name.
    """
    name = name.strip()
    local = re.sub(r"[^a-z0-9]+", ".", name.lower()).strip(".")
    if not name.isascii() or not local:
        digest = hashlib.sha256(name.encode("utf-8")).hexdigest()[:12]
        local = f"{local}.{digest}" if local else f"author.{digest}"
    return f"{local}@{AUTHOR_EMAIL_DOMAIN}"

def _get_or_404(db, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise RPCError(ErrorType.NOT_FOUND, "User not found")
    return user

@router.query("list")
def list_users(ctx, _):
    rows = ctx.db.execute(select(User).order_by(User.name)).scalars()
    return [UserOut.model_validate(u) for u in rows]

@router.query("getById", input=Id)
def get_by_id(ctx, user_id: int):
    return UserOut.model_validate(_get_or_404(ctx.db, user_id))

@router.query("getByEmail", input=EmailIn)
def get_by_email(ctx, body: EmailIn):
    user = find_user_by_email(ctx.db, body.email)
    if user is None:
        raise RPCError(ErrorType.NOT_FOUND, "User not found")
    return UserOut.model_validate(user)

@router.mutation("update", input=UserUpdate, use=[is_self])
def update_user(ctx, body: UserUpdate):
    user = _get_or_404(ctx.db, body.id)
    for field, value in body.changes().items():
        setattr(user, field, value)
    ctx.db.commit()
    ctx.db.refresh(user)
    return UserOut.model_validate(user)

@router.mutation("createOrGetAuthor", input=AuthorIn)
def create_or_get_author(ctx, body: AuthorIn):
    """Return the author owning the given or derived email, creating it if needed.

    No credentials are involved: the created account has no password.
    """
    email = body.email or derived_author_email(body.name)
    existing = find_user_by_email(ctx.db, email)
    if existing is not None:
        return UserOut.model_validate(existing)

    author = User(name=body.name, email=email, role="author", is_active=True)
    ctx.db.add(author)
    ctx.db.commit()
    ctx.db.refresh(author)
    logger.info("author_created", user_id=author.id)
    return UserOut.model_validate(author)

@router.mutation("delete", input=Id, use=[require_role("admin")])
def delete_user(ctx, user_id: int):
    result = ctx.db.execute(sql_delete(User).where(User.id == user_id))
    if result.rowcount == 0:
        raise RPCError(ErrorType.NOT_FOUND, "User not found")
    ctx.db.commit()
    return {"id": user_id}
