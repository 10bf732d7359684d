from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from crm import __version__
from crm.api.v1 import api_router
from crm.core.errors import register_exception_handlers
from crm.core.limiter import limiter
from crm.core.logging import configure_logging
from crm.core.response_envelope import register_response_envelope
from crm.core.settings import settings
from crm.events import register_event_handlers
from crm.middlewares.request_context import RequestContextMiddleware
from crm.middlewares.security_headers import SecurityHeadersMiddleware
from crm.middlewares.trust_proxies import TrustedProxiesMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Loan CRM Backend", version=__version__)
    register_exception_handlers(app)
    register_response_envelope(app)
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(TrustedProxiesMiddleware, proxies_count=settings.proxies_count)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.enable_hsts)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix="/api/v1")
    register_event_handlers(app)
    return app


app = create_app()
