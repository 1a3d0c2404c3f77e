from __future__ import annotations

import os
import time
from contextlib import asynccontextmanager

import structlog

from .api_models import (
    CompareRequest,
    CompareResponse,
    ModelsResponse,
    ProviderModels,
    make_compare_response,
    make_error_response,
)
from .catalog import catalog_listing
from .config import OrchestratorConfig
from .errors import InvalidArgumentError
from .http_security import install_middlewares
from .logging import configure_logging
from .metrics import maybe_start_metrics, server_errors_total, server_requests_total
from .orchestrator import Orchestrator

log = structlog.get_logger()


def create_app(cfg: OrchestratorConfig | None = None, orchestrator: Orchestrator | None = None):
    try:
        from fastapi import FastAPI
        from fastapi.exceptions import RequestValidationError
        from fastapi.responses import JSONResponse
    except ImportError as e:  # pragma: no cover
        raise RuntimeError('Install the "server" extra: pip install -e ".[server]"') from e

    cfg = cfg or OrchestratorConfig()
    # A bad credential file or Fernet key raises ConfigurationError here, before the app serves anything.
    configure_logging(level=cfg.log_level, fmt=cfg.log_format, secrets=cfg.secrets())
    orchestrator = orchestrator or Orchestrator(cfg)

    def _request_id(request) -> str | None:
        return getattr(getattr(request, "state", None), "request_id", None)

    def _invalid_request(request, message: str):
        server_errors_total.labels(type="invalid_request_error").inc()
        return JSONResponse(
            status_code=400,
            content=make_error_response(message=message, type="invalid_request_error", code=_request_id(request)),
        )

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        maybe_start_metrics(enable=cfg.enable_metrics, bind=cfg.metrics_bind, port=cfg.metrics_port)
        try:
            yield
        finally:
            await orchestrator.aclose()

    app = FastAPI(
        title="multimodel-compare",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if cfg.enable_api_docs else None,
        redoc_url="/redoc" if cfg.enable_api_docs else None,
        openapi_url="/openapi.json" if cfg.enable_api_docs else None,
    )
    install_middlewares(app, cfg=cfg)

    @app.exception_handler(InvalidArgumentError)
    async def _invalid_argument_handler(request, exc: InvalidArgumentError):
        return _invalid_request(request, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request, exc: RequestValidationError):
        errors = exc.errors()
        message = str(errors[0].get("msg", "Invalid request.")) if errors else "Invalid request."
        return _invalid_request(request, message.removeprefix("Value error, "))

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/v1/models", response_model=ModelsResponse)
    async def list_models():
        server_requests_total.labels(path="/v1/models", status="200").inc()
        return ModelsResponse(providers=[ProviderModels(**entry) for entry in catalog_listing()])

    @app.post("/v1/compare", response_model=CompareResponse)
    async def compare(req: CompareRequest):
        started_at = time.monotonic()
        if len(req.models or []) > cfg.max_models_per_request:
            raise InvalidArgumentError("Too many models selected.")

        batch = await orchestrator.run(req.prompt, req.selections())

        server_requests_total.labels(path="/v1/compare", status="200").inc()
        log.info(
            "compare_served",
            models=len(batch.results),
            duration_ms=int((time.monotonic() - started_at) * 1000),
        )
        return make_compare_response(prompt=req.prompt.strip(), batch=batch)

    return app


def main() -> None:  # pragma: no cover
    try:
        import uvicorn
    except ImportError as e:
        raise RuntimeError('Install the "server" extra: pip install -e ".[server]"') from e

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("multimodel_compare.server:create_app", host=host, port=port, factory=True)


if __name__ == "__main__":  # pragma: no cover
    main()
