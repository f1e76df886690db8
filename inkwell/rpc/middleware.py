"""Per-procedure middleware.

A middleware is ``fn(call, next_) -> result``: it may inspect or rewrite
``call`` and must return ``next_()`` to continue down the chain.
"""

import time
from typing import Any, Callable

from pydantic import TypeAdapter, ValidationError

from inkwell.logging_config import bind_request_context, clear_request_context, get_logger
from inkwell.middleware.ratelimit import RateLimiter, get_rate_limiter
from inkwell.rpc.errors import (
    ErrorType,
    RPCError,
    forbidden,
    unauthorized,
    validation_failed,
)

logger = get_logger(__name__)


def logger_middleware(log_input: bool = False, log_output: bool = False):
    def _log(call, next_):
        user_id = call.ctx.user.id if call.ctx.user else "anonymous"
        bind_request_context(path=call.path, type=call.type, user_id=user_id)
        logger.debug(
            "rpc_call_started",
            path=call.path,
            type=call.type,
            user_id=user_id,
            input=call.raw_input if log_input else None,
        )
        start = time.perf_counter()
        success = False
        result = None
        try:
            result = next_()
            success = True
            return result
        finally:
            logger.info(
                "rpc_call_completed",
                path=call.path,
                type=call.type,
                user_id=user_id,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
                success=success,
                output=result if log_output else None,
            )
            clear_request_context()
    return _log


def client_identifier(ctx) -> str:
    if ctx.user is not None:
        return f"user:{ctx.user.id}"
    forwarded = ctx.headers.get("x-forwarded-for", "")
    ip = forwarded.split(",")[0].strip() or ctx.client_host or "anonymous"
    return f"ip:{ip}"


def rate_limit_middleware(
    limiter: RateLimiter | None = None,
    identifier: Callable[[Any], str] = client_identifier,
):
    def _limit(call, next_):
        decision = (limiter or get_rate_limiter()).hit(identifier(call.ctx))
        if not decision.allowed:
            logger.warning("rate_limit_exceeded", key=decision.key, path=call.path)
            raise RPCError(
                ErrorType.TOO_MANY_REQUESTS,
                "Rate limit exceeded",
                details=decision.as_details(),
            )
        return next_()
    return _limit


def validate_input(schema):
    """Parse ``call.raw_input`` against ``schema`` before any handler runs.

    ``schema`` is anything pydantic can build a TypeAdapter for: a model, a
    constrained scalar type or an ``Annotated`` union. ``None`` means the
    procedure takes no input.
    """
    adapter = TypeAdapter(schema) if schema is not None else None

    def _validate(call, next_):
        if adapter is None:
            call.input = None
            return next_()
        try:
            call.input = adapter.validate_python(call.raw_input)
        except ValidationError as exc:
            raise validation_failed(exc) from None
        return next_()
    return _validate


def require_auth(call, next_):
    if call.ctx.user is None:
        raise unauthorized()
    return next_()


def require_permission(permission: str):
    def _guard(call, next_):
        user = call.ctx.user
        if user is None:
            raise unauthorized()
        if not user.has_permission(permission):
            raise forbidden(
                f"You don't have the required permission: {permission}",
                details={"requiredPermission": permission, "userPermissions": list(user.permissions)},
            )
        return next_()
    return _guard


def require_role(role: str):
    def _guard(call, next_):
        user = call.ctx.user
        if user is None:
            raise unauthorized()
        if not user.has_role(role):
            raise forbidden(
                f"You don't have the required role: {role}",
                details={"requiredRole": role, "userRoles": list(user.roles)},
            )
        return next_()
    return _guard


def require_owner(
    load: Callable[[Any, Any], Any],
    owner_id: Callable[[Any], Any],
    *,
    entity: str = "Resource",
    bypass_roles: tuple[str, ...] = ("admin",),
):
    """Allow the call only for the user owning the resource ``load`` returns.

    ``load(ctx, input)`` fetches the target; ``owner_id(resource)`` names its
    owning user. Holders of a ``bypass_roles`` role skip the ownership check
    but a missing resource is still NOT_FOUND.
    """
    def _guard(call, next_):
        user = call.ctx.user
        if user is None:
            raise unauthorized()

        resource = load(call.ctx, call.input)
        if resource is None:
            raise RPCError(ErrorType.NOT_FOUND, f"{entity} not found")

        if any(user.has_role(role) for role in bypass_roles):
            return next_()

        owner = owner_id(resource)
        if owner is None or owner != user.id:
            raise forbidden(
                "You don't have permission to access this resource",
                details={"ownerId": owner, "requesterId": user.id},
            )
        return next_()
    return _guard
