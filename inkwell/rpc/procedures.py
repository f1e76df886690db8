"""Procedure registration and dispatch.

Every procedure runs the same chain before its own guards:
logging -> rate limit (mutations only) -> input validation -> ``use`` guards.
"""

from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.exc import IntegrityError

from inkwell.rpc.context import Context
from inkwell.rpc.errors import map_integrity_error
from inkwell.rpc.middleware import logger_middleware, rate_limit_middleware, validate_input

QUERY = "query"
MUTATION = "mutation"


@dataclass
class Call:
    path: str
    type: str
    ctx: Context
    raw_input: Any = None
    input: Any = None


class Procedure:
    def __init__(self, path: str, type: str, handler: Callable, middlewares: list[Callable]):
        self.path = path
        self.type = type
        self.handler = handler
        self.middlewares = middlewares

    def __call__(self, ctx: Context, raw_input: Any = None) -> Any:
        call = Call(path=self.path, type=self.type, ctx=ctx, raw_input=raw_input)
        return self._dispatch(call, 0)

    def _dispatch(self, call: Call, index: int) -> Any:
        if index < len(self.middlewares):
            return self.middlewares[index](call, lambda: self._dispatch(call, index + 1))
        return self._invoke(call)

    def _invoke(self, call: Call) -> Any:
        try:
            return self.handler(call.ctx, call.input)
        except IntegrityError as exc:
            call.ctx.db.rollback()
            mapped = map_integrity_error(exc)
            if mapped is exc:
                raise
            raise mapped from exc


class RPCRouter:
    def __init__(self, name: str):
        self.name = name
        self.procedures: dict[str, Procedure] = {}

    def query(self, name: str, *, input=None, use=(), log_input: bool = False):
        return self._register(QUERY, name, input, use, log_input)

    def mutation(self, name: str, *, input=None, use=(), log_input: bool = False):
        return self._register(MUTATION, name, input, use, log_input)

    def _register(self, type: str, name: str, schema, use, log_input: bool):
        def decorator(handler):
            chain = [logger_middleware(log_input=log_input)]
            if type == MUTATION:
                chain.append(rate_limit_middleware())
            chain.append(validate_input(schema))
            chain.extend(use)

            path = f"{self.name}.{name}"
            self.procedures[name] = Procedure(path, type, handler, chain)
            return handler
        return decorator


class AppRouter:
    def __init__(self, *routers: RPCRouter):
        self._procedures: dict[str, Procedure] = {}
        for router in routers:
            for procedure in router.procedures.values():
                self._procedures[procedure.path] = procedure

    def get(self, path: str) -> Procedure | None:
        return self._procedures.get(path)

    @property
    def paths(self) -> list[str]:
        return sorted(self._procedures)
