from fastapi import Request
from inkwell.config import settings

def get_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None

async def session_cookie_middleware(request: Request, call_next):
    """Promote the session cookie to an Authorization header.

    An explicit Authorization header always wins over the cookie.
    """
    if "authorization" not in request.headers:
        token = request.cookies.get(settings.session_cookie_name)
        if token:
            request.scope["headers"] = [
                *request.scope["headers"],
                (b"authorization", f"Bearer {token}".encode("latin-1")),
            ]
    return await call_next(request)
