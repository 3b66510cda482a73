from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from app.core import config
from app.core.database.engine import init_db
from app.core.errors import DomainError
from app.features.access.routes import router as access_router
from app.features.agencies.routes import router as agency_router
from app.features.divisions.routes import router as division_router
from app.features.employees.routes import router as employee_router
from app.features.geo.routes import router as geo_router
from app.features.jurisdictions.routes import router as jurisdiction_router
from app.features.lifecycle.dependencies import notifier
from app.features.permissions.routes import router as permission_router
from app.features.users.routes import router as user_router
from app.features.users.dependencies import get_authorization_header
from app.utils import get_logger


log = get_logger(__name__)
log.info("Initializing server")
app = FastAPI(
    title="Agency Administration Backend",
    description="Agencies, divisions, employees and jurisdictions with cascading lifecycle and scoped access",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)
limiter = Limiter(key_func=get_authorization_header, default_limits=[config.RATE_LIMIT])
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.app.features."), timing=timing, tags=tags))


app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
    origins = [config.ALLOW_ORIGIN]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        if key == "__root__":
            key = "root"
        errors[key] = error["msg"]
    log.info("Request validation error %s", errors)
    return JSONResponse(status_code=400, content=jsonable_encoder(errors))


@app.exception_handler(DomainError)
async def domain_error_handler(_request: Request, exc: DomainError):
    if exc.status_code >= 500:
        log.error("Internal error: %s", exc.message)
    else:
        log.info("%s: %s", exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"error": "You are going too fast"}, status_code=429)


@app.on_event("startup")
async def startup():
    """Initialize database on application startup."""
    log.info("Initializing database...")
    await init_db()
    log.info("Database initialized successfully")


@app.on_event("shutdown")
async def shutdown():
    await notifier.drain()


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": "Agency Administration API",
        "version": "0.1.0",
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": {
            "info": "Endpoints require a Bearer token; mutating calls also need X-Request-Token",
            "request_token": "/users/me/request-token",
        },
        "features": {
            "agencies": "Agencies with an automatic headquarters division and employee",
            "divisions": "Headquarters (pusat) and branch (cabang) divisions",
            "employees": "Principals working in a division",
            "jurisdictions": "Territories assigned to divisions, exclusive within an agency",
            "access": "Per-principal relation and allowed operations for any entity",
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(user_router, prefix="/users", tags=["users"])
app.include_router(permission_router, prefix="/permissions", tags=["permissions"])
app.include_router(geo_router, prefix="/geo", tags=["geo"])
app.include_router(agency_router, prefix="/agencies", tags=["agencies"])
# Jurisdiction routes first: /divisions/available-territories must win over /divisions/{division_id}
app.include_router(jurisdiction_router, prefix="/divisions", tags=["jurisdictions"])
app.include_router(division_router, prefix="/divisions", tags=["divisions"])
app.include_router(employee_router, prefix="/employees", tags=["employees"])
app.include_router(access_router, prefix="/access", tags=["access"])
