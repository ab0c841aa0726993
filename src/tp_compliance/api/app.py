"""FastAPI application for the transfer pricing compliance engines.

Run with ``tp-compliance serve`` or ``uvicorn tp_compliance.api.app:app``.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .. import __version__
from ..config.loader import load_config
from ..config.schema import AppConfig
from ..engines.comparable_search import ComparableSearchEngine
from ..engines.forex_engine import ForexEngine
from ..errors import TPComplianceError, ValidationError
from ..utils.log_setup import log_context
from ..utils.serialization import to_wire
from .routers import register_routers


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Build the application around one configuration.

    Args:
        config: Loaded configuration. Defaults to ``load_config(validate=False)``
            so importing the module never creates directories.
    """
    config = config or load_config(validate=False)

    app = FastAPI(
        title="TP Compliance",
        description="Indian transfer pricing compliance engines",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Thin Capitalization", "description": "Section 94B interest limitation"},
            {"name": "Comparables", "description": "Comparable search and benchmarking"},
            {"name": "Forex", "description": "Exchange rates and conversions"},
            {"name": "Dispute Workflow", "description": "DRP and ITAT timelines"},
            {"name": "Penalty", "description": "Penalty and interest exposure"},
        ],
    )
    app.state.config = config
    app.state.forex_engine = ForexEngine(config.forex)
    app.state.comparables_engine = ComparableSearchEngine(config.comparables)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        with log_context(request_id=request_id):
            logger.info(f"{request.method} {request.url.path}")
            response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(TPComplianceError)
    async def compliance_error_handler(request: Request, exc: TPComplianceError):
        body: dict[str, object] = {"error": exc.message}
        if isinstance(exc, ValidationError) and exc.issues:
            body["issues"] = to_wire(exc.issues)
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"] if part != "body")
        message = f"{location}: {first['msg']}" if location else first["msg"]
        return JSONResponse(status_code=400, content={"error": message})

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok", "version": __version__}

    register_routers(app)
    return app


app = create_app()
