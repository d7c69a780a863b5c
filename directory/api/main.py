"""
FastAPI app assembly: logging, error translation, middleware and router wiring.

One router per registered entity is generated from the resource registry;
the root index links every collection so clients can discover the graph from
a single entry point.
"""
import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, status
from starlette.requests import Request
from starlette.responses import JSONResponse

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)

from directory import __version__
from directory.api.deps import get_links
from directory.api.resources import build_resource_router
from directory.domain import build_registry
from directory.errors import DirectoryError
from directory.resources.links import LinkBuilder, link
from directory.resources.registry import ResourceRegistry
from directory.utils.settings import get_settings

_MUTATING_METHODS = ("POST", "PUT", "PATCH", "DELETE")
_IDENTITY_HEADERS = ("x-auth-request-user", "x-forwarded-user")


def create_app(registry: Optional[ResourceRegistry] = None) -> FastAPI:
    settings = get_settings()
    registry = registry or build_registry()

    app = FastAPI(
        title="Directory Resource Service",
        description="Hypermedia API for accounts, groups and roles.",
        version=__version__,
    )
    # Avoid implicit trailing-slash redirects for predictable URLs
    app.router.redirect_slashes = False
    app.state.registry = registry

    @app.exception_handler(DirectoryError)
    async def directory_error_handler(request: Request, exc: DirectoryError):
        headers = None
        if exc.status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
            headers = {"Retry-After": "1"}
        if exc.status_code >= 500:
            logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.detail)
        return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)

    # Middleware: reject anonymous writes when identity is required
    @app.middleware("http")
    async def enforce_readonly_for_guests(request: Request, call_next):
        if get_settings().require_identity and request.method in _MUTATING_METHODS:
            h = request.headers
            if not any(h.get(name) for name in _IDENTITY_HEADERS):
                return JSONResponse(
                    {"kind": "unauthorized", "detail": "Guest mode is read-only. Sign in to perform changes."},
                    status_code=status.HTTP_401_UNAUTHORIZED,
                )
        return await call_next(request)

    @app.get(settings.api_prefix + "/", name="index")
    def index(links: LinkBuilder = Depends(get_links)):
        doc_links = {"self": link(links.root())}
        for descriptor in registry.entities.all():
            doc_links[descriptor.collection] = link(
                links.collection(descriptor) + "{?page,size,sort,projection}",
                templated=True,
            )
        return {"_links": doc_links}

    for descriptor in registry.entities.all():
        app.include_router(build_resource_router(descriptor, registry), prefix=settings.api_prefix)

    logger.info(
        "routes_ready: prefix=%r collections=%s",
        settings.api_prefix,
        [d.collection for d in registry.entities.all()],
    )
    return app


app = create_app()
