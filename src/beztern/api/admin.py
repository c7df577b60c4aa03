"""Admin dashboard endpoints guarded by the profile role."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from beztern.api.guards import require_admin
from beztern.domain.admin import AdminTab, DateFilter, ExportFile

if TYPE_CHECKING:
    from beztern.containers import AppContainer

router = APIRouter(
    prefix="/admin-dashboard",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


class ProfileChanges(BaseModel):
    """Fields an admin may edit on a profile."""

    full_name: str | None = None
    phone: str | None = None
    username: str | None = None
    role: Literal["admin", "user"] | None = None
    active: bool | None = None


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def _csv_response(export: ExportFile) -> Response:
    return Response(
        content=export.content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.get("")
async def dashboard(
    request: Request,
    tab: AdminTab = AdminTab.EMPLOYEES,
    search: str = "",
    date_filter: DateFilter = DateFilter.ALL,
) -> dict[str, object]:
    """Return the counts for every tab and the filtered rows of one."""
    service = _container(request).admin_service
    loaded = service.load_dashboard()
    return {
        "tab": tab.value,
        "counts": loaded.counts(),
        "rows": service.search(loaded, tab, search, date_filter),
    }


@router.get("/export")
async def export_tab(
    request: Request, tab: AdminTab = AdminTab.EMPLOYEES
) -> Response:
    """CSV of the whole active collection, ignoring search and date filters."""
    return _csv_response(_container(request).admin_service.export_csv(tab))


@router.get("/report")
async def export_report(request: Request) -> Response:
    return _csv_response(_container(request).admin_service.export_report())


@router.patch("/profiles/{profile_id}")
async def update_profile(
    profile_id: str, changes: ProfileChanges, request: Request
) -> dict[str, object]:
    updated = _container(request).admin_service.update_profile(
        profile_id, changes.model_dump(exclude_unset=True)
    )
    return {
        "level": "success",
        "message": "User updated successfully",
        "profile": updated,
    }


@router.delete("/profiles/{profile_id}")
async def delete_profile(profile_id: str, request: Request) -> dict[str, str]:
    _container(request).admin_service.delete_profile(profile_id)
    return {"level": "success", "message": "User deleted successfully"}
