"""FastAPI application for sheet2tree."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from server.routers import export, sheets
from sheet2tree.cache import SheetTreeCache
from sheet2tree.exceptions import ConfigError, DocumentGenerationError, SheetNotLoadedError
from sheet2tree.export import DocumentGenerator, HttpDocumentGenerator
from sheet2tree.preferences import JsonFilePreferenceStore, PreferenceStore
from sheet2tree.utils.logging_config import get_logger

logger = get_logger(__name__)


def create_app(
    *,
    cache: SheetTreeCache | None = None,
    prefs: PreferenceStore | None = None,
    generator: DocumentGenerator | None = None,
) -> FastAPI:
    """Create the application with its cache, preference store and document generator.

    Args:
        cache: Sheet cache. A fresh one is created if None.
        prefs: Preference store. Defaults to the JSON file store.
        generator: Document generator. Defaults to the HTTP document service.

    Returns:
        The configured FastAPI application.
    """
    app = FastAPI(title="sheet2tree", description="Spreadsheet hierarchy trees and subtree export")
    app.state.cache = cache or SheetTreeCache()
    app.state.prefs = prefs or JsonFilePreferenceStore()
    app.state.generator = generator or HttpDocumentGenerator()

    app.include_router(sheets.router)
    app.include_router(export.router)

    @app.exception_handler(ConfigError)
    async def config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
        logger.warning("Rejected hierarchy configuration", extra={"path": request.url.path, "column": exc.column})
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": str(exc)},
        )

    @app.exception_handler(SheetNotLoadedError)
    async def sheet_not_loaded_handler(request: Request, exc: SheetNotLoadedError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": str(exc)})

    @app.exception_handler(DocumentGenerationError)
    async def document_generation_handler(request: Request, exc: DocumentGenerationError) -> JSONResponse:
        logger.error("Document generation failed", extra={"path": request.url.path, "error": str(exc)})
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"error": str(exc)})

    return app


app = create_app()
