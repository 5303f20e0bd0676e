import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.roasts import router as roasts_router
from app.core.config import get_settings, is_production
from app.core.dependencies import init_db
from app.core.errors import GENERIC_ERROR_MESSAGE, RATE_LIMITED_MESSAGE, RoastError, classify
from app.utils.rate_limit import check_roast_rate_limit, get_client_ip

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Site Roast API",
    version="1.0.0",
    docs_url="/docs" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.openapi_enabled else None,
)


@app.on_event("startup")
async def _startup_jobs():
    errors = settings.validate_required_config()
    if errors:
        if is_production():
            raise RuntimeError(f"Configuration validation failed in production environment: {'; '.join(errors)}")
        for error in errors:
            logger.warning("Configuration: %s", error)
    init_db()


if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        expose_headers=["RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset", "Retry-After"],
    )

app.include_router(roasts_router, tags=["roasts"])


@app.exception_handler(RoastError)
async def _roast_error_handler(request: Request, exc: RoastError):
    status_code, message = classify(exc)
    if status_code >= 500:
        logger.error(
            "%s %s failed (%s): %s",
            request.method,
            request.url.path,
            exc.kind.value,
            exc.detail,
            exc_info=exc,
        )
    else:
        logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind.value, exc.detail)
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning("%s %s invalid body: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request body."})


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Hide internal details for 5xx in production unless explicitly enabled.
    if exc.status_code >= 500 and not settings.expose_error_details:
        return JSONResponse(status_code=exc.status_code, content={"error": GENERIC_ERROR_MESSAGE})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    if settings.expose_error_details:
        return JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE, "detail": str(exc)})
    return JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE})


@app.middleware("http")
async def roast_rate_limit_middleware(request: Request, call_next):
    if request.method != "POST" or request.url.path != "/roast":
        return await call_next(request)

    decision = check_roast_rate_limit(request)
    if decision is None:
        return await call_next(request)

    if not decision.allowed:
        logger.warning("Rate limit exceeded for %s on %s", get_client_ip(request) or "unknown", request.url.path)
        return JSONResponse(
            status_code=429,
            content={"error": RATE_LIMITED_MESSAGE},
            headers=decision.headers(),
        )

    response = await call_next(request)
    for name, value in decision.headers().items():
        response.headers[name] = value
    return response


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    if not settings.security_headers_enabled:
        return response

    headers = response.headers
    if "X-Content-Type-Options" not in headers:
        headers["X-Content-Type-Options"] = "nosniff"
    if "X-Frame-Options" not in headers:
        headers["X-Frame-Options"] = "DENY"
    if "Referrer-Policy" not in headers:
        headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if "Strict-Transport-Security" not in headers:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    if "Content-Security-Policy" not in headers:
        headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"

    return response


@app.get("/health")
async def health_check():
    return {"status": "ok"}
