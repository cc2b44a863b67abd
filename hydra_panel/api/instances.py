from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from hydra_panel.api.deps import client_ip, get_current_user, get_instance_service, require_admin
from hydra_panel.core.errors import NotFoundError, SuspendedError
from hydra_panel.domain.user import CurrentUser
from hydra_panel.schemas.instance import InstanceEditRequest, InstanceEditResponse
from hydra_panel.services.instance_service import InstanceService


router = APIRouter(tags=["instances"])


@router.post("/instance/reinstall/{instance_id}", summary="Reinstall an instance on a fresh container")
async def reinstall_instance(
    instance_id: str,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    service: InstanceService = Depends(get_instance_service),
):
    try:
        await service.reinstall(instance_id, user, ip=client_ip(request))
    except NotFoundError:
        return RedirectResponse("/instances", status_code=302)
    except SuspendedError:
        return RedirectResponse("/instances?err=SUSPENDED", status_code=302)

    return RedirectResponse(f"/instance/{instance_id}", status_code=302)


@router.put(
    "/instances/edit/{instance_id}",
    response_model=InstanceEditResponse,
    summary="Change image and/or resource limits (admin)",
)
async def edit_instance(
    instance_id: str,
    payload: InstanceEditRequest,
    request: Request,
    user: CurrentUser = Depends(require_admin),
    service: InstanceService = Depends(get_instance_service),
):
    return await service.edit(
        instance_id,
        user,
        image=payload.Image,
        memory=payload.Memory,
        cpu=payload.Cpu,
        ip=client_ip(request),
    )
