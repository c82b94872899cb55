import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from familyos.config import settings
from familyos.core.exceptions import (
    AuthorizationError, InvariantViolation, LastOwnerError, MembershipConflict,
    ResourceNotFound, StaleEnvelope
)
from familyos.modules.auth import routes as auth_routes
from familyos.modules.groups import routes as groups_routes
from familyos.modules.resources import routes as resources_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

# Same body for every denial, so callers cannot tell a non-member from a member lacking rights
NOT_PERMITTED = {"detail": "Not permitted"}

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(AuthorizationError)
async def authorization_exception_handler(request: Request, exc: AuthorizationError):
    return JSONResponse(status_code=403, content=NOT_PERMITTED)


@app.exception_handler(StaleEnvelope)
async def stale_envelope_handler(request: Request, exc: StaleEnvelope):
    return JSONResponse(
        status_code=409,
        content={"detail": "The resource was changed by someone else, reload and try again"}
    )


@app.exception_handler(ResourceNotFound)
async def not_found_handler(request: Request, exc: ResourceNotFound):
    return JSONResponse(status_code=404, content={"detail": "Not found"})


@app.exception_handler(LastOwnerError)
async def last_owner_handler(request: Request, exc: LastOwnerError):
    return JSONResponse(status_code=409, content={"detail": "A family must keep at least one owner"})


@app.exception_handler(MembershipConflict)
async def membership_conflict_handler(request: Request, exc: MembershipConflict):
    return JSONResponse(status_code=409, content={"detail": "Already a member of this family"})


@app.exception_handler(InvariantViolation)
async def invariant_violation_handler(request: Request, exc: InvariantViolation):
    logger.error("Invariant violation: %s", exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(groups_routes.router, prefix="/api/v1")
for resource_router in resources_routes.routers:
    app.include_router(resource_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": "Welcome to familyos-backend", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: extend here with a Supabase round trip if needed."""
    return {"status": "ready"}
