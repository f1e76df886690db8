"""HTTP entry point: a single path that runs one call or a batch of calls."""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from inkwell.auth.routes import router as auth_router
from inkwell.categories.routes import router as categories_router
from inkwell.db.session import get_db
from inkwell.posts.routes import router as posts_router
from inkwell.rpc.context import Context, context_from_request
from inkwell.rpc.errors import ErrorType, RPCError, format_error
from inkwell.rpc.procedures import QUERY, AppRouter
from inkwell.users.routes import router as users_router

app_router = AppRouter(posts_router, categories_router, auth_router, users_router)

router = APIRouter(prefix="/api/rpc", tags=["rpc"])


def run_call(ctx: Context, path: Any, raw_input: Any, *, allowed_type: str | None = None) -> tuple[int, dict]:
    """Run one procedure call, returning ``(http_status, result-or-error body)``."""
    try:
        if not isinstance(path, str) or not path:
            raise RPCError(
                ErrorType.VALIDATION_ERROR,
                "Each call needs a procedure path",
                validation_errors=[{"field": "path", "message": "Procedure path is required"}],
            )

        procedure = app_router.get(path)
        if procedure is None:
            raise RPCError(ErrorType.NOT_FOUND, f'No procedure found on path "{path}"')
        if allowed_type is not None and procedure.type != allowed_type:
            raise RPCError(
                ErrorType.METHOD_NOT_SUPPORTED,
                f'Unsupported GET-request to {procedure.type} procedure at path "{path}"',
            )

        data = procedure(ctx, raw_input)
        return 200, {"result": {"data": jsonable_encoder(data)}}
    except Exception as exc:
        ctx.db.rollback()
        status, envelope = format_error(exc, path if isinstance(path, str) else None)
        return status, {"error": envelope}


def run_batch(ctx: Context, payload: Any) -> tuple[int, Any]:
    if isinstance(payload, list):
        results = []
        for item in payload:
            item = item if isinstance(item, dict) else {}
            _, body = run_call(ctx, item.get("path"), item.get("input"))
            if "id" in item:
                body = {"id": item["id"], **body}
            results.append(body)
        failed = any("error" in body for body in results)
        return (207 if failed else 200), results

    if not isinstance(payload, dict):
        payload = {}
    status, body = run_call(ctx, payload.get("path"), payload.get("input"))
    if "id" in payload:
        body = {"id": payload["id"], **body}
    return status, body


def _respond(status: int, body: Any, response: Response) -> JSONResponse:
    out = JSONResponse(status_code=status, content=body)
    out.raw_headers.extend(h for h in response.raw_headers if h[0] == b"set-cookie")
    return out


def _parse_error(message: str) -> tuple[int, dict]:
    return format_error(RPCError(ErrorType.UNPROCESSABLE_CONTENT, message))


@router.post("")
async def rpc_post(request: Request, db: Session = Depends(get_db)):
    response = Response()
    try:
        payload = json.loads(await request.body() or b"null")
    except ValueError:
        status, envelope = _parse_error("Request body is not valid JSON")
        return JSONResponse(status_code=status, content={"error": envelope})

    ctx = context_from_request(request, db, response)
    status, body = await run_in_threadpool(run_batch, ctx, payload)
    return _respond(status, body, response)


@router.get("/{path}")
async def rpc_get(path: str, request: Request, input: str | None = None, db: Session = Depends(get_db)):
    response = Response()
    raw_input = None
    if input is not None:
        try:
            raw_input = json.loads(input)
        except ValueError:
            status, envelope = _parse_error("Query parameter 'input' is not valid JSON")
            return JSONResponse(status_code=status, content={"error": envelope})

    ctx = context_from_request(request, db, response)
    status, body = await run_in_threadpool(run_call, ctx, path, raw_input, allowed_type=QUERY)
    return _respond(status, body, response)
