from fastapi import APIRouter, Depends, Request

from catalog_sync.entrypoints.http.dependencies import get_edit_view_query_use_case
from catalog_sync.entrypoints.http.dtos.view_filters import (
    ClearFiltersRequestDTO,
    PatchFiltersRequestDTO,
    RemoveFilterRequestDTO,
    ViewFiltersResponseDTO,
)
from catalog_sync.entrypoints.http.error_responses import ErrorResponse
from catalog_sync.entrypoints.http.mappers.view_filters_mapper import ViewFiltersMapper
from catalog_sync.use_cases.edit_view_query import EditViewQuery


router = APIRouter(tags=["Views"])


@router.get(
    "/views/{view_name}/filters",
    response_model=ViewFiltersResponseDTO,
    summary="Canonicalize a view URL",
    description="""
    Decode the request's query string for the given view and return the
    canonical filter state, the canonical query string and the removable chips.

    ## Views
    - `products`: general list (Used items never shown)
    - `clearance`: category and condition locked
    - `brand:<slug>`, `category:<slug>`: route filter locked

    Malformed values are dropped silently; unknown keys pass through.

    ## Example
    ```
    GET /v1/views/clearance/filters?condition=New&minPrice=abc
    ```
    """,
    responses={404: {"model": ErrorResponse, "description": "Unknown view"}},
)
def get_view_filters(
    view_name: str,
    request: Request,
    use_case: EditViewQuery = Depends(get_edit_view_query_use_case),
) -> ViewFiltersResponseDTO:
    result = use_case.canonicalize(request.query_params.multi_items())
    return ViewFiltersMapper.to_response(view_name, result)


@router.post(
    "/views/{view_name}/filters/patch",
    response_model=ViewFiltersResponseDTO,
    summary="Apply a filter patch",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown view"},
        409: {"model": ErrorResponse, "description": "Patch changes a locked filter"},
        422: {"model": ErrorResponse, "description": "Invalid patch"},
    },
)
def patch_view_filters(
    view_name: str,
    body: PatchFiltersRequestDTO,
    use_case: EditViewQuery = Depends(get_edit_view_query_use_case),
) -> ViewFiltersResponseDTO:
    result = use_case.apply_patch(body.query, body.patch)
    return ViewFiltersMapper.to_response(view_name, result)


@router.post(
    "/views/{view_name}/filters/remove",
    response_model=ViewFiltersResponseDTO,
    summary="Remove one active filter chip",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown view"},
        409: {"model": ErrorResponse, "description": "Filter is locked on this view"},
    },
)
def remove_view_filter(
    view_name: str,
    body: RemoveFilterRequestDTO,
    use_case: EditViewQuery = Depends(get_edit_view_query_use_case),
) -> ViewFiltersResponseDTO:
    result = use_case.remove_filter(body.query, body.key, body.value)
    return ViewFiltersMapper.to_response(view_name, result)


@router.post(
    "/views/{view_name}/filters/clear",
    response_model=ViewFiltersResponseDTO,
    summary="Clear all removable filters",
    responses={404: {"model": ErrorResponse, "description": "Unknown view"}},
)
def clear_view_filters(
    view_name: str,
    body: ClearFiltersRequestDTO,
    use_case: EditViewQuery = Depends(get_edit_view_query_use_case),
) -> ViewFiltersResponseDTO:
    result = use_case.clear_all(body.query)
    return ViewFiltersMapper.to_response(view_name, result)
