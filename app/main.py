from fastapi import FastAPI

from app.cuadre.api import api_router
from app.cuadre.core.config import settings
from app.cuadre.core.errors import setup_exception_handlers
from app.cuadre.core.logging import configure_logging
from app.cuadre.middleware.actor import ActorContextMiddleware
from app.cuadre.middleware.observability import ObservabilityMiddleware
from app.cuadre.middleware.trace import TraceIdMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(ActorContextMiddleware)
    app.add_middleware(TraceIdMiddleware)
    app.add_middleware(ObservabilityMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
