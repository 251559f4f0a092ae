from fastapi import FastAPI

from app.tally.api import api_router
from app.tally.core.config import settings
from app.tally.core.errors import setup_exception_handlers
from app.tally.core.logging import configure_logging
from app.tally.middleware.observability import ObservabilityMiddleware
from app.tally.middleware.tenant import TenantContextMiddleware
from app.tally.middleware.trace import TraceIdMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(TenantContextMiddleware)
    app.add_middleware(TraceIdMiddleware)
    app.add_middleware(ObservabilityMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
