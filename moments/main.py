import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from moments.config import get_settings
from moments.dependencies import get_moment_service
from moments.logging_utils import RequestLoggingMiddleware, log_action_data, setup_logging
from moments.metrics import get_metrics, get_metrics_content_type, record_action_outcome
from moments.schemas import Envelope, HealthResponse
from moments.service import MomentService, failure


settings = get_settings()

# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the stores on startup so misconfiguration fails fast
    (e.g. an unreachable DATABASE_URL for the sql backend).
    """
    get_moment_service()
    yield


app = FastAPI(
    title="Moments API",
    description="Records name/message/photo moments and lists them newest first",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness probe - always returns 200 once the app is running."""
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
def health_ready(
    response: Response,
    service: MomentService = Depends(get_moment_service),
) -> HealthResponse:
    """
    Readiness probe - returns 200 only if:
    1. The tabular store opens and the moments table exists (created if missing)
    2. The blob store folder resolves

    Otherwise returns 503 (Service Unavailable).
    """
    reason = service.check_access()
    if reason:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", reason=reason)
    return HealthResponse(status="ready")


# =============================================================================
# Action Routes
# =============================================================================

async def read_params(request: Request, include_body: bool) -> dict[str, str]:
    """
    Collect request parameters from the query string and, for writes, from a
    form-encoded or multipart body. Body fields override query fields.
    A repeated key keeps its first value. File parts are ignored; images
    arrive as base64 text.
    """
    params: dict[str, str] = {}
    for key, value in request.query_params.multi_items():
        params.setdefault(key, value)
    if include_body:
        form = await request.form(max_part_size=settings.MAX_UPLOAD_BYTES)
        body: dict[str, str] = {}
        for key, value in form.multi_items():
            if isinstance(value, str):
                body.setdefault(key, value)
        params.update(body)
    return params


def envelope_response(request: Request, action: Optional[str], envelope: Envelope) -> JSONResponse:
    """Failures are reported in the body; the HTTP status is always 200."""
    record_action_outcome(action, envelope.success)
    log_action_data(request, action, envelope.success)
    return JSONResponse(content=envelope.model_dump(mode="json"))


@app.post("/")
@app.post("/exec")
async def handle_write(
    request: Request,
    service: MomentService = Depends(get_moment_service),
) -> JSONResponse:
    """
    Write entry point.

    Actions:
        - addMoment: name, message, imageUrl, [rotation]
        - uploadImage: imageData, [fileName]
    """
    action = None
    try:
        params = await read_params(request, include_body=True)
        action = params.get("action")
        logger.info(f"POST action={action}")
        envelope = await run_in_threadpool(service.handle_write, params)
    except Exception as e:
        logger.error(f"Error in POST: {e}")
        envelope = failure(f"Server error: {e}")
    return envelope_response(request, action, envelope)


@app.get("/")
@app.get("/exec")
async def handle_read(
    request: Request,
    service: MomentService = Depends(get_moment_service),
) -> JSONResponse:
    """
    Read entry point.

    Actions:
        - getMoments: all moments, most recently added first
    """
    action = None
    try:
        params = await read_params(request, include_body=False)
        action = params.get("action")
        logger.info(f"GET action={action}")
        envelope = await run_in_threadpool(service.handle_read, params)
    except Exception as e:
        logger.error(f"Error in GET: {e}")
        envelope = failure(f"Server error: {e}")
    return envelope_response(request, action, envelope)


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus-style metrics."""
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
