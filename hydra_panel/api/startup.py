# hydra_panel/api/startup.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from hydra_panel.api.deps import client_ip, get_current_user, get_instance_service
from hydra_panel.core.errors import NotFoundError, SuspendedError
from hydra_panel.domain.user import CurrentUser
from hydra_panel.schemas.instance import RenameRequest, StartupResponse, SuccessResponse
from hydra_panel.services.instance_service import InstanceService


router = APIRouter(tags=["startup"])


# ---------------------------
# Startup page
# ---------------------------
@router.get(
    "/instance/{instance_id}/startup",
    response_model=StartupResponse,
    summary="Startup settings of an instance and its alternative images",
)
async def get_startup(
    instance_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: InstanceService = Depends(get_instance_service),
):
    try:
        return await service.startup_view(instance_id, user)
    except NotFoundError:
        return RedirectResponse("/instances", status_code=302)
    except SuspendedError:
        return RedirectResponse("/instances?err=SUSPENDED", status_code=302)


# ---------------------------
# Environment variables
# ---------------------------
@router.post("/instances/startup/changevariable/{instance_id}", response_model=SuccessResponse)
async def change_variable(
    instance_id: str,
    request: Request,
    variable: Optional[str] = Query(None, description="Variable name"),
    value: Optional[str] = Query(None, description="New value, empty when omitted"),
    user: CurrentUser = Depends(get_current_user),
    service: InstanceService = Depends(get_instance_service),
):
    await service.change_variable(instance_id, variable, value, user, ip=client_ip(request))
    return SuccessResponse()


# ---------------------------
# Rename
# ---------------------------
@router.post("/instance/{instance_id}/change/name/{name}", response_model=SuccessResponse)
async def rename_instance(
    instance_id: str,
    name: str,
    request: Request,
    payload: Optional[RenameRequest] = None,
    user: CurrentUser = Depends(get_current_user),
    service: InstanceService = Depends(get_instance_service),
):
    # The new name is taken from the body; the path segment is kept for old clients.
    new_name = payload.newName if payload else None
    await service.rename(instance_id, new_name, user, ip=client_ip(request))
    return SuccessResponse()


# ---------------------------
# Image change
# ---------------------------
@router.get("/instances/startup/changeimage/{instance_id}", summary="Redeploy an instance on another image")
async def change_image(
    instance_id: str,
    request: Request,
    image: Optional[str] = Query(None, description="Image reference to switch to"),
    acting_user: Optional[str] = Query(None, alias="user", description="User requesting the change"),
    user: CurrentUser = Depends(get_current_user),
    service: InstanceService = Depends(get_instance_service),
):
    try:
        await service.change_image(instance_id, image, acting_user, user, ip=client_ip(request))
    except NotFoundError:
        return RedirectResponse("/instances", status_code=302)
    except SuspendedError:
        return RedirectResponse(f"/instance/{instance_id}/suspended", status_code=302)

    return RedirectResponse(f"/instance/{instance_id}/startup", status_code=302)
