"""
Generic admin routes: every registered resource gets the same CRUD, bulk
delete, CSV export and CSV import endpoints.
"""
from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response, status

from adminrest.api.routes.dependencies import get_controller, get_resource
from adminrest.resources.registry import Resource
from adminrest.schemas.base import DeleteMultipleRequest, ImportFromCsvRequest
from adminrest.schemas.filtering import FilterDescriptor, parse_filter_params
from adminrest.services.resource_controller import CsvExport, ResourceController

router = APIRouter()


def get_filters(request: Request) -> list[FilterDescriptor]:
    return parse_filter_params(request.query_params)


@router.get("/{resource_name}/schema")
async def get_schema(
    resource: Resource = Depends(get_resource),
    controller: ResourceController = Depends(get_controller),
):
    """Describe the fields of a resource."""
    return controller.describe(resource)


@router.post("/{resource_name}/deleteMultiple", status_code=status.HTTP_204_NO_CONTENT)
async def destroy_multiple(
    payload: DeleteMultipleRequest,
    resource: Resource = Depends(get_resource),
    controller: ResourceController = Depends(get_controller),
):
    """Delete every row whose id is listed in the body."""
    await controller.delete_many(resource, payload.ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{resource_name}/importFromCsv", status_code=status.HTTP_204_NO_CONTENT)
async def import_from_csv(
    payload: ImportFromCsvRequest,
    resource: Resource = Depends(get_resource),
    controller: ResourceController = Depends(get_controller),
):
    """Create or update rows from a CSV file hosted at ``url``."""
    await controller.import_csv(resource, payload.url)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{resource_name}")
@router.get("/{resource_name}/", include_in_schema=False)
async def index(
    limit: int | None = None,
    skip: int | None = None,
    sort: str | None = None,
    export: bool = False,
    filters: list[FilterDescriptor] = Depends(get_filters),
    resource: Resource = Depends(get_resource),
    controller: ResourceController = Depends(get_controller),
):
    """
    List rows matching the filters.

    With ``export=true`` the matching rows are returned as a CSV attachment
    instead of the ``{itemCount, items}`` envelope.
    """
    result = await controller.list(
        resource,
        filters,
        limit=limit,
        skip=skip,
        sort=sort,
        export=export,
    )

    if isinstance(result, CsvExport):
        return Response(
            content=result.content,
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={result.filename}"},
        )
    return result


@router.get("/{resource_name}/{id}")
async def show(
    id: str,
    resource: Resource = Depends(get_resource),
    controller: ResourceController = Depends(get_controller),
):
    return await controller.get(resource, id)


@router.post("/{resource_name}")
@router.post("/{resource_name}/", include_in_schema=False)
async def create(
    body: dict[str, Any] = Body(...),
    resource: Resource = Depends(get_resource),
    controller: ResourceController = Depends(get_controller),
):
    return await controller.create(resource, body)


@router.put("/{resource_name}/{id}")
@router.patch("/{resource_name}/{id}")
async def update(
    id: str,
    body: dict[str, Any] = Body(...),
    resource: Resource = Depends(get_resource),
    controller: ResourceController = Depends(get_controller),
):
    return await controller.update(resource, id, body)


@router.delete("/{resource_name}/{id}", status_code=status.HTTP_204_NO_CONTENT)
async def destroy(
    id: str,
    resource: Resource = Depends(get_resource),
    controller: ResourceController = Depends(get_controller),
):
    await controller.delete(resource, id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
