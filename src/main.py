"""FastAPI application entrypoint.

Routes inbound requests to the upstream event service:

    GET  /getUsers                 proxied verbatim
    POST /addEvent                 behind the AddEvent circuit breaker
    GET  /getEvents                proxied with bounded retry
    GET  /getEventsByUserId/{id}   fan-out, failed events become null
    GET  /health                   service and breaker status

The ``AddEvent`` breaker state is created once per process here and
handed to the ``EventServiceClient``.
"""

import logging
import math
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError

from src.core.config import Settings
from src.core.errors import ErrorResponse, EventGatewayError, ServiceDegradedError
from src.event_client import EventServiceClient
from src.models.schemas import HealthResponse
from src.resilience.circuit_breaker import BreakerMode, BreakerState
from src.resilience.fan_out import payloads

logger = logging.getLogger(__name__)

settings = Settings()

_start_time = time.monotonic()

# /addEvent accepts any JSON object
_EVENT_BODY = TypeAdapter(dict[str, Any])


def create_app(app_settings: Settings, event_client: EventServiceClient | None = None) -> FastAPI:
    """Build the gateway app around *event_client* (a fresh one if omitted)."""
    client = event_client or EventServiceClient(app_settings, BreakerState())

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await client.close()

    app = FastAPI(
        title=app_settings.SERVICE_NAME,
        version=app_settings.SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.event_client = client

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next) -> Response:
        """Assign or preserve a unique request ID on every request."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(EventGatewayError)
    async def gateway_error_handler(_request: Request, exc: EventGatewayError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse.from_exception(exc).to_content(),
        )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Return service health with uptime and the AddEvent breaker snapshot."""
        breaker = client.add_event_breaker
        return HealthResponse(
            service=app_settings.SERVICE_NAME,
            version=app_settings.SERVICE_VERSION,
            status="degraded" if breaker.mode is BreakerMode.DEGRADED else "healthy",
            uptime_seconds=round(time.monotonic() - _start_time, 2),
            breaker=breaker.snapshot(),
        )

    @app.get("/getUsers")
    async def get_users() -> Any:
        return await client.get_users()

    @app.post("/addEvent")
    async def add_event(request: Request) -> Any:
        """Submit an event; failures always answer 503.

        The breaker decides before the body is read, so a degraded gateway
        rejects even malformed bodies with 503.
        """
        try:
            mode = client.add_event_breaker.admit()
        except ServiceDegradedError as exc:
            return JSONResponse(
                status_code=503,
                content=ErrorResponse.from_exception(exc).to_content(),
                headers={"Retry-After": str(math.ceil(exc.retry_after))},
            )

        try:
            body = _EVENT_BODY.validate_json(await request.body())
        except ValidationError as exc:
            raise RequestValidationError(exc.errors(include_url=False)) from exc

        try:
            return await client.add_event(body, mode=mode)
        except EventGatewayError as exc:
            return JSONResponse(
                status_code=503,
                content=ErrorResponse(error="Unable to add event", detail=str(exc)).to_content(),
            )

    @app.get("/getEvents")
    async def get_events() -> Any:
        return await client.get_events()

    @app.get("/getEventsByUserId/{user_id}")
    async def get_events_by_user_id(user_id: str) -> list[Any]:
        return payloads(await client.get_user_events(user_id))

    return app


app = create_app(settings)


def run() -> None:
    """Start the gateway with uvicorn on ``HOST:PORT``."""
    import uvicorn

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting %s on %s:%d", settings.SERVICE_NAME, settings.HOST, settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
