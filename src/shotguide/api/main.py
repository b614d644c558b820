"""Shot Guide - FastAPI Application.

This module is the single entry point for the web application.  It builds
the FastAPI ``app`` instance, defines all REST API routes, and provides the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :data:`~shotguide.core.config.config`
  (environment variables and ``.env``), passed explicitly to
  :func:`create_app`.
- **Backends**: the lifespan owns one shared ``httpx.AsyncClient``; the text
  backend variant, the plan generator and the sketch dispatcher are built on
  top of it and stored on ``app.state``.
- **Liveness**: every plan generation starts a new generation for the
  caller's session (``X-Session-Id`` header).  Sketch results that arrive
  for a superseded generation come back as ``{"image": null, "stale": true}``.
- **The HTML page** is served as a raw ``HTMLResponse``; the page fetches
  plans first and then requests each card's sketch independently.

Endpoints
---------
========  =================  ==========================================
Method    Path               Purpose
========  =================  ==========================================
GET       ``/``              Serve the main HTML page
GET       ``/api/config``    Version, limits, models, backend variant
POST      ``/api/plans``     Generate the plan list
POST      ``/api/sketch``    Generate one card's sketch
POST      ``/api/gallery``   Plans plus every sketch in one response
POST      ``/api/export``    Download the gallery as PNG or PDF
========  =================  ==========================================

Usage
-----
CLI (installed entry point)::

    shotguide

Direct invocation::

    python -m shotguide.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response

from shotguide import __version__
from shotguide.api.models import ExportRequest, GeneratePlansRequest, SketchRequest
from shotguide.core.backends import backend_registry
from shotguide.core.config import ShotguideConfig, config
from shotguide.core.errors import (
    BackendError,
    ConfigurationError,
    EmptyResponseError,
    MalformedResponseError,
    PlanValidationError,
    ShotguideError,
)
from shotguide.core.export import (
    EXPORT_FORMATS,
    export_filename,
    export_pdf,
    export_png,
    render_contact_sheet,
)
from shotguide.core.gallery import render_gallery
from shotguide.core.liveness import GenerationTracker, guarded
from shotguide.core.models import ASPECT_RATIOS
from shotguide.core.pipeline import PlanGenerator
from shotguide.core.sketch import SketchRequestDispatcher

logger = logging.getLogger(__name__)

TEMPLATES_DIR: Path = Path(__file__).resolve().parent.parent / "templates"
DEFAULT_SESSION = "default"

# Status codes for the generation error family.  Anything not listed is 500.
ERROR_STATUS: dict[type[ShotguideError], int] = {
    ConfigurationError: 503,
    BackendError: 502,
    EmptyResponseError: 502,
    MalformedResponseError: 502,
    PlanValidationError: 502,
}

MEDIA_TYPES = {"png": "image/png", "pdf": "application/pdf"}


def _error_body(code: str, message: str) -> dict:
    return {"ok": False, "code": code, "message": message}


def error_status(exc: ShotguideError) -> int:
    """Return the HTTP status for a generation error."""
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS:
            return ERROR_STATUS[error_type]
    return 500


def create_app(app_config: ShotguideConfig, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        app_config: Configuration for every service the app creates.
        transport: Optional httpx transport for the shared client (tests
            pass an ``httpx.MockTransport`` here).

    Returns:
        The configured application.  Its services exist only while the
        lifespan is running.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Create the shared HTTP client and services; close the client on shutdown."""
        # --- Startup -----------------------------------------------------------
        client = httpx.AsyncClient(timeout=app_config.http_timeout, transport=transport)
        backend = backend_registry.instantiate(app_config.text_backend, app_config, client)
        app.state.http_client = client
        app.state.generator = PlanGenerator(app_config, backend)
        app.state.dispatcher = SketchRequestDispatcher(app_config, client)
        app.state.tracker = GenerationTracker()
        logger.info(
            f"Services ready (text backend: {backend.name}, text model: {app_config.text_model}, "
            f"image model: {app_config.image_model})"
        )
        if not app_config.api_key:
            logger.warning("No API key configured; generation requests will fail until one is set")

        yield  # Application runs here.

        # --- Shutdown ----------------------------------------------------------
        await client.aclose()
        logger.info("HTTP client closed on shutdown.")

    app = FastAPI(
        title="Shot Guide",
        description="Photography shooting-plan generator with line-sketch previews.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Error handlers: every failure leaves as {"ok": false, "code", "message"}.
    # -----------------------------------------------------------------------

    @app.exception_handler(ShotguideError)
    async def handle_generation_error(request: Request, exc: ShotguideError) -> JSONResponse:
        status = error_status(exc)
        logger.error(f"{request.url.path} failed ({exc.code}): {exc}")
        return JSONResponse(status_code=status, content=_error_body(exc.code, str(exc)))

    @app.exception_handler(ValueError)
    async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content=_error_body("INVALID_INPUT", str(exc)))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'][1:]) or 'body'}: {error['msg']}"
            for error in exc.errors()
        )
        return JSONResponse(status_code=422, content=_error_body("INVALID_REQUEST", details))

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        """Serve the main application HTML page.

        Raises:
            HTTPException: 404 if ``index.html`` is not found.
        """
        index_path = TEMPLATES_DIR / "index.html"
        if index_path.exists():
            return HTMLResponse(content=index_path.read_text(encoding="utf-8"))
        raise HTTPException(status_code=404, detail="index.html not found")

    @app.get("/api/config")
    async def get_config() -> dict:
        """Return the settings the frontend needs to render the form."""
        return {
            "version": __version__,
            "max_per_orientation": app_config.max_per_orientation,
            "aspect_ratios": list(ASPECT_RATIOS),
            "orientation_order": app_config.orientation_order,
            "text_backend": app_config.text_backend,
            "text_backends": backend_registry.list_available(),
            "text_model": app_config.text_model,
            "image_model": app_config.image_model,
            "api_key_configured": bool(app_config.api_key),
            "export_formats": list(EXPORT_FORMATS),
        }

    @app.post("/api/plans")
    async def generate_plans(
        req: GeneratePlansRequest,
        request: Request,
        x_session_id: str = Header(default=DEFAULT_SESSION),
    ) -> dict:
        """Generate the plan list for a new gallery.

        Starting a generation supersedes the session's previous one: sketch
        results still in flight for it will be reported as stale.

        Raises:
            ShotguideError: Mapped to 502/503 by the error handler.
        """
        user_input = req.to_user_input()
        user_input.validate(app_config.max_per_orientation)

        token = request.app.state.tracker.begin(x_session_id)
        batch = await request.app.state.generator.generate(user_input)

        return {
            "generation_id": token.generation_id,
            "plans": [plan.to_wire() for plan in batch.plans],
            "requested": batch.requested,
            "dropped": batch.dropped,
            "warnings": batch.warnings,
            "stale": not token.alive,
        }

    @app.post("/api/sketch")
    async def generate_sketch(
        req: SketchRequest,
        request: Request,
        x_session_id: str = Header(default=DEFAULT_SESSION),
    ) -> dict:
        """Generate one card's sketch.

        Never fails because of the image backend: an unavailable sketch is
        reported as ``image: null``.
        """
        dispatcher: SketchRequestDispatcher = request.app.state.dispatcher
        if req.generation_id is None:
            image = await dispatcher.dispatch(req.image_prompt, req.aspect_ratio)
            return {"image": image, "stale": False}

        token = request.app.state.tracker.lookup(x_session_id, req.generation_id)
        if token is None:
            logger.info(f"Ignoring sketch request for stale generation {req.generation_id}")
            return {"image": None, "stale": True}

        applied, image = await guarded(token, dispatcher.dispatch(req.image_prompt, req.aspect_ratio))
        return {"image": image, "stale": not applied}

    @app.post("/api/gallery")
    async def generate_gallery(
        req: GeneratePlansRequest,
        request: Request,
        x_session_id: str = Header(default=DEFAULT_SESSION),
    ) -> dict:
        """Generate plans and every sketch in a single response."""
        user_input = req.to_user_input()
        user_input.validate(app_config.max_per_orientation)

        token = request.app.state.tracker.begin(x_session_id)
        result = await render_gallery(
            request.app.state.generator, request.app.state.dispatcher, user_input, token
        )
        return {
            "generation_id": token.generation_id,
            "cards": [card.to_dict() for card in result.cards],
            "requested": result.batch.requested,
            "dropped": result.batch.dropped,
            "warnings": result.batch.warnings,
            "stale": result.stale,
        }

    @app.post("/api/export")
    def export_gallery(req: ExportRequest) -> Response:
        """Render the given cards as a contact sheet and return it as a download."""
        sheet = render_contact_sheet(
            [card.to_sheet_entry() for card in req.cards], app_config.export_background
        )
        content = export_pdf(sheet) if req.format == "pdf" else export_png(sheet)
        filename = export_filename(app_config.export_prefix, req.format)
        logger.info(f"Exported {len(req.cards)} card(s) as {filename}")
        return Response(
            content=content,
            media_type=MEDIA_TYPES[req.format],
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return app


app = create_app(config)


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~shotguide.core.config.config` (which
    loads from ``SHOTGUIDE_SERVER_HOST`` and ``SHOTGUIDE_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:7860``.

    This function is registered as the ``shotguide`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "shotguide.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
