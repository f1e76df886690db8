from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from inkwell.config import settings
from inkwell.db.session import init_db
from inkwell.logging_config import get_logger, setup_logging
from inkwell.middleware.auth import session_cookie_middleware
from inkwell.rpc.routes import router as rpc_router

logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("app_started", name=settings.app_name, env=settings.app_env)
    yield

def create_app(*, run_startup: bool = True) -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name, lifespan=lifespan if run_startup else None)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(session_cookie_middleware)

    app.include_router(rpc_router)

    @app.get("/health", tags=["root"])
    def health():
        return {"name": settings.app_name, "env": settings.app_env, "status": "ok"}

    return app

app = create_app()
