"""ediscovery-custody service entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text

from ediscovery_custody.api.router import router
from ediscovery_custody.api.schemas import Envelope, ErrorBody
from ediscovery_custody.core.errors import EDiscoveryError, ErrorKind
from ediscovery_custody.database import create_engine, create_schema, create_session_factory
from ediscovery_custody.settings import Settings

logger = logging.getLogger(__name__)

settings = Settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle.

    Args:
        app: The FastAPI application instance.

    Yields:
        None
    """
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    engine = create_engine(settings.database_url, echo=settings.database_echo)
    if settings.database_create_schema:
        await create_schema(engine)
    app.state.engine = engine
    app.state.db_session = create_session_factory(engine)
    app.state.http_client = httpx.AsyncClient()
    logger.info("Service started", extra={"service": settings.service_name})
    yield
    await app.state.http_client.aclose()
    await engine.dispose()
    logger.info("Service stopped", extra={"service": settings.service_name})


app = FastAPI(title=settings.service_name, version="0.1.0", lifespan=lifespan)
app.state.settings = settings


def _error_response(status_code: int, kind: str, message: str) -> JSONResponse:
    envelope = Envelope[None](success=False, error=ErrorBody(kind=kind, message=message))
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json"))


@app.exception_handler(EDiscoveryError)
async def handle_domain_error(request: Request, exc: EDiscoveryError) -> JSONResponse:
    logger.info(
        "Request rejected",
        extra={"path": request.url.path, "error_kind": exc.kind.value, "error": exc.message},
    )
    return _error_response(exc.status_code, exc.kind.value, exc.message)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return _error_response(422, ErrorKind.VALIDATION.value, details)


@app.get("/live", tags=["health"])
async def live() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/ready", tags=["health"])
async def ready(request: Request) -> JSONResponse:
    """Report readiness once the database answers a trivial query."""
    try:
        async with request.app.state.db_session() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("Readiness check failed", extra={"error": str(exc)})
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return JSONResponse(status_code=200, content={"status": "ok"})


app.include_router(router, prefix="/api/v1")
