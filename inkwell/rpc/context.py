
from dataclasses import dataclass, field
from fastapi import Request, Response
from sqlalchemy.orm import Session
from inkwell.logging_config import get_logger
from inkwell.middleware.auth import get_bearer_token
from inkwell.utils.security import Identity, Rejected, verify_access_token

logger = get_logger(__name__)


@dataclass
class Context:
    db: Session
    user: Identity | None = None
    headers: dict[str, str] = field(default_factory=dict)
    client_host: str | None = None
    response: Response | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


def create_context(db: Session, headers, client_host: str | None = None, response: Response | None = None) -> Context:
    """Build the per-request context, attaching an identity when the bearer token verifies.

    A bad or expired token leaves the request anonymous; procedures that
    need a user reject it later.
    """
    ctx = Context(
        db=db,
        headers={k.lower(): v for k, v in headers.items()},
        client_host=client_host,
        response=response,
    )

    token = get_bearer_token(ctx.headers.get("authorization"))
    if not token:
        return ctx

    verification = verify_access_token(token)
    if isinstance(verification, Rejected):
        logger.info("token_rejected", reason=verification.reason)
        return ctx

    ctx.user = verification.identity
    return ctx


def context_from_request(request: Request, db: Session, response: Response | None = None) -> Context:
    return create_context(
        db,
        request.headers,
        client_host=request.client.host if request.client else None,
        response=response,
    )
