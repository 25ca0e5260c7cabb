"""FastAPI application routes, middleware, and metrics."""

import time
import uuid
from typing import Optional

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from structlog.contextvars import bind_contextvars, clear_contextvars

from app import config
from app.aqi_service.aqi import AqiService, get_aqi_service
from app.errors import AqiServiceError, CityNotFoundError, MissingCityError
from app.health.health_check import is_air_quality_api_available, is_cache_available
from app.logging_config import logger
from app.models.health import Dependencies, HealthResponse, ServiceStatus
from app.models.reading import AqiReading

app = FastAPI(title="AQI proxy")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_methods=["GET"],
    allow_headers=["*"],
)

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "HTTP request duration in seconds", ["path"]
)


@app.middleware("http")
async def request_logging(request: Request, call_next):
    """Log request details, attach a request ID, and record metrics.

    Args:
        request: Incoming HTTP request.
        call_next: FastAPI handler for the next middleware/app.

    Returns:
        The response produced by the downstream handler.
    """
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    bind_contextvars(request_id=request_id)
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response
    finally:
        duration_s = time.perf_counter() - start
        duration_ms = round(duration_s * 1000, 2)
        status_code = getattr(response, "status_code", 500)
        logger.info(
            "HTTP_REQUEST",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
        )
        REQUEST_COUNT.labels(
            method=request.method, path=request.url.path, status_code=status_code
        ).inc()
        REQUEST_LATENCY.labels(path=request.url.path).observe(duration_s)
        clear_contextvars()


@app.exception_handler(MissingCityError)
async def missing_city_handler(request: Request, exc: MissingCityError):
    """Convert a missing city parameter into a 400 response."""
    return JSONResponse(status_code=400, content={"error": "City name is required"})


@app.exception_handler(CityNotFoundError)
async def city_not_found_handler(request: Request, exc: CityNotFoundError):
    """Convert city lookup errors into 404 responses.

    Args:
        request: Incoming HTTP request.
        exc: Raised city lookup error.

    Returns:
        A JSON response with the error message.
    """
    return JSONResponse(status_code=404, content={"error": "City not found"})


@app.exception_handler(AqiServiceError)
async def aqi_service_error_handler(request: Request, exc: AqiServiceError):
    """Convert upstream and other lookup failures into 500 responses.

    The detailed cause is logged; the client only sees a generic message.
    """
    logger.error("AQI_LOOKUP_FAILED", error_type=type(exc).__name__, error=str(exc))
    return JSONResponse(status_code=500, content={"error": "Failed to fetch AQI data"})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    """Convert any unhandled error into the same generic 500 response."""
    logger.error(
        "UNHANDLED_ERROR",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(status_code=500, content={"error": "Failed to fetch AQI data"})


@app.get("/")
async def root():
    """Return a basic liveness response."""
    return {"message": "AQI proxy is running"}


@app.get("/api/search", response_model=AqiReading)
def search(
    city: Optional[str] = None,
    service: AqiService = Depends(get_aqi_service),
) -> AqiReading:
    """Fetch the current AQI reading for the requested city.

    Args:
        city: City name string from the query parameter.
        service: Lookup service, injected.

    Returns:
        An AqiReading from the cache or the Open-Meteo APIs.
    """
    if not city or not city.strip():
        raise MissingCityError("City name is required")
    return service.lookup(city)


@app.get("/health", response_model=HealthResponse)
async def health(service: AqiService = Depends(get_aqi_service)) -> HealthResponse:
    """Report API health and dependency availability.

    Returns:
        A HealthResponse containing dependency status.
    """
    air_quality_api_available = await is_air_quality_api_available()
    return HealthResponse(
        status="ok",
        cache_backend=service.cache.backend,
        dependencies=Dependencies(
            air_quality_api=ServiceStatus.available
            if air_quality_api_available
            else ServiceStatus.not_available,
            cache=is_cache_available(service.cache),
        ),
    )


@app.get("/metrics")
async def metrics():
    """Expose Prometheus metrics for scraping."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
