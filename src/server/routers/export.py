"""Export and preview endpoints."""

from fastapi import APIRouter, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, Response

from server.models import ErrorResponse, ExportRequest
from sheet2tree.schemas import SelectionMiss
from sheet2tree.service import export_sheet, preview_sheet

router = APIRouter(prefix="/api")

EXPORT_RESPONSES = {
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
}


def _miss_response(miss: SelectionMiss) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=ErrorResponse(error=miss.message, available_values=miss.available_values).model_dump(),
    )


@router.post("/sheets/{source_id}/{sheet_id}/export", response_model=None, responses=EXPORT_RESPONSES)
async def post_export(
    request: Request,
    source_id: str,
    sheet_id: str,
    body: ExportRequest,
) -> Response:
    """Export a top-level subtree as a PDF.

    **Returns**

    - **Response**: ``application/pdf`` attachment

    **Raises**

    - **404**: the sheet is not loaded, or no top-level item matches ``value``
    - **502**: the document service failed

    """
    result = await export_sheet(
        request.app.state.cache,
        request.app.state.generator,
        source_id,
        sheet_id,
        body.value,
        include_empty=body.include_empty,
        prefs=request.app.state.prefs,
    )
    if isinstance(result, SelectionMiss):
        return _miss_response(result)
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


@router.post("/sheets/{source_id}/{sheet_id}/preview", response_model=None, responses=EXPORT_RESPONSES)
async def post_preview(
    request: Request,
    source_id: str,
    sheet_id: str,
    body: ExportRequest,
) -> Response:
    """Render the HTML preview of a top-level subtree."""
    result = await preview_sheet(
        request.app.state.cache,
        request.app.state.generator,
        source_id,
        sheet_id,
        body.value,
        include_empty=body.include_empty,
        prefs=request.app.state.prefs,
    )
    if isinstance(result, SelectionMiss):
        return _miss_response(result)
    return HTMLResponse(content=result)
