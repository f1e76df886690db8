
from fastapi import Response
from inkwell.config import settings
from inkwell.auth.service import authenticate, issue_token, register_user
from inkwell.logging_config import get_logger
from inkwell.rpc.middleware import require_auth
from inkwell.rpc.procedures import RPCRouter
from inkwell.schemas.auth import AuthOut, AuthUser, IdentityOut, LoginIn, SignupIn

logger = get_logger(__name__)

router = RPCRouter("auth")

def set_auth_cookie(response: Response | None, token: str):
    if response is None:
        return
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.app_env == "production",
        path="/",
        max_age=settings.access_token_expire_minutes * 60,
    )

@router.mutation("signup", input=SignupIn)
def signup(ctx, body: SignupIn):
    user = register_user(ctx.db, body.name, body.email, body.password)
    token = issue_token(user)
    set_auth_cookie(ctx.response, token)
    logger.info("user_signed_up", user_id=user.id)
    return AuthOut(
        user=AuthUser.model_validate(user),
        token=token,
        message="Account created successfully",
    )

@router.mutation("login", input=LoginIn)
def login(ctx, body: LoginIn):
    user = authenticate(ctx.db, body.email, body.password)
    token = issue_token(user)
    set_auth_cookie(ctx.response, token)
    return AuthOut(
        user=AuthUser.model_validate(user),
        token=token,
        message="Login successful",
    )

@router.mutation("logout")
def logout(ctx, _):
    if ctx.response is not None:
        ctx.response.delete_cookie(settings.session_cookie_name, path="/")
    return {"ok": True}

@router.query("me", use=[require_auth])
def me(ctx, _):
    user = ctx.user
    return IdentityOut(
        id=user.id,
        email=user.email,
        name=user.name,
        permissions=list(user.permissions),
        roles=list(user.roles),
    )
