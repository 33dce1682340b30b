import uvicorn
from fastapi import FastAPI

from keyledger.api.routes.actions import router as actions_router
from keyledger.api.routes.admin import router as admin_router
from keyledger.api.routes.health import router as health_router
from keyledger.api.routes.public import router as public_router
from keyledger.core.config import get_settings
from keyledger.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, app_env=settings.app_env)

    app = FastAPI(
        title="Key Ledger API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.include_router(health_router)
    app.include_router(actions_router)
    app.include_router(admin_router)
    app.include_router(public_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "keyledger.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
