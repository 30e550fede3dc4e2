"""Sheet loading, tree building and configuration endpoints."""

from fastapi import APIRouter, Request, status

from server.models import (
    BuildTreeRequest,
    ConfigResponse,
    ErrorResponse,
    LoadTableRequest,
    LoadTableResponse,
    TopLevelResponse,
    TreeResponse,
)
from sheet2tree.hierarchy import hierarchy_config_to_wire
from sheet2tree.preferences import clear_hierarchy_config, load_export_selection, load_hierarchy_config
from sheet2tree.schemas import RawTable
from sheet2tree.selection import list_top_level_values
from sheet2tree.service import BuildOptions, build_sheet_tree, load_sheet

router = APIRouter(prefix="/api")

NOT_LOADED_RESPONSES = {status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}}


@router.put("/sheets/{source_id}/{sheet_id}", response_model=LoadTableResponse)
def put_sheet(request: Request, source_id: str, sheet_id: str, body: LoadTableRequest) -> LoadTableResponse:
    """Load a sheet's table, replacing any earlier table and tree for it.

    **Parameters**

    - **body** (`LoadTableRequest`): Row grid, optional headers and title

    **Returns**

    - **LoadTableResponse**: Column and data row counts

    """
    headers = body.headers if body.headers is not None else body.data[0]
    table = RawTable(headers=headers, data=body.data)
    load_sheet(request.app.state.cache, source_id, sheet_id, table, title=body.title)
    return LoadTableResponse(
        source_id=source_id,
        sheet_id=sheet_id,
        columns=table.column_count,
        rows=table.data_row_count,
    )


@router.delete("/sources/{source_id}")
def delete_source(request: Request, source_id: str) -> dict[str, int]:
    """Invalidate every cached sheet of a source."""
    removed = request.app.state.cache.invalidate(source_id)
    return {"invalidated": removed}


@router.post(
    "/sheets/{source_id}/{sheet_id}/tree",
    response_model=TreeResponse,
    responses={
        **NOT_LOADED_RESPONSES,
        status.HTTP_422_UNPROCESSABLE_ENTITY: {"model": ErrorResponse},
    },
)
def post_tree(request: Request, source_id: str, sheet_id: str, body: BuildTreeRequest) -> TreeResponse:
    """Build the sheet's tree.

    **This endpoint resolves the hierarchy configuration** (explicit, saved,
    detected from the headers, or the linear default), builds the tree and
    caches it for export.

    **Raises**

    - **404**: the sheet has not been loaded
    - **422**: the configuration is cyclic or references unknown columns

    """
    tree, metadata = build_sheet_tree(
        request.app.state.cache,
        request.app.state.prefs,
        source_id,
        sheet_id,
        BuildOptions(config=body.config, roles=dict(body.roles), save=body.save),
    )
    return TreeResponse(
        **tree.to_dict(),
        config=hierarchy_config_to_wire(metadata["config"]),
        config_source=metadata["config_source"],
        skipped=metadata["skipped"],
    )


@router.get("/sheets/{source_id}/{sheet_id}/tree", response_model=TreeResponse, responses=NOT_LOADED_RESPONSES)
def get_tree(request: Request, source_id: str, sheet_id: str) -> TreeResponse:
    """Return the cached tree of a sheet."""
    tree = request.app.state.cache.snapshot(source_id, sheet_id)
    return TreeResponse(**tree.to_dict())


@router.get(
    "/sheets/{source_id}/{sheet_id}/top-level",
    response_model=TopLevelResponse,
    responses=NOT_LOADED_RESPONSES,
)
def get_top_level(request: Request, source_id: str, sheet_id: str) -> TopLevelResponse:
    """List the top-level values available for export.

    ``selected`` is the last export choice for the sheet, if still offered.
    """
    tree = request.app.state.cache.snapshot(source_id, sheet_id)
    values = list_top_level_values(tree)
    selected = load_export_selection(request.app.state.prefs, source_id, sheet_id, values)
    return TopLevelResponse(values=values, selected=selected)


@router.get("/sheets/{source_id}/{sheet_id}/config", response_model=ConfigResponse)
def get_config(request: Request, source_id: str, sheet_id: str) -> ConfigResponse:
    """Return the saved hierarchy configuration of a sheet."""
    config = load_hierarchy_config(request.app.state.prefs, source_id, sheet_id)
    return ConfigResponse(config=hierarchy_config_to_wire(config) if config else None)


@router.delete("/sheets/{source_id}/{sheet_id}/config", status_code=status.HTTP_204_NO_CONTENT)
def delete_config(request: Request, source_id: str, sheet_id: str) -> None:
    """Forget the saved hierarchy configuration of a sheet."""
    clear_hierarchy_config(request.app.state.prefs, source_id, sheet_id)
