# hydra_panel/services/instance_service.py
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from hydra_panel.core.config import Settings
from hydra_panel.core.errors import (
    AuthorizationError,
    NotFoundError,
    RemoteError,
    SuspendedError,
    ValidationError,
)
from hydra_panel.domain.instance import Instance
from hydra_panel.domain.ports import AuditLog, Authorizer, NodeAgent
from hydra_panel.domain.user import CurrentUser
from hydra_panel.repositories.image_repository import KVImageRepository
from hydra_panel.repositories.instance_repository import InstanceRepository
from hydra_panel.services import request_builder

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 32


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _blank(value: Any) -> bool:
    return value is None or value == ""


def _positive_number(value: Any, label: str) -> int | float | None:
    """Parse an optional resource limit; None when not given."""
    if _blank(value):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a positive number") from None
    if isinstance(value, bool) or not number > 0:
        raise ValidationError(f"{label} must be a positive number")
    return int(number) if number.is_integer() else number


def set_env_variable(env: list[str], variable: str, value: str) -> list[str]:
    """Replace the ``variable=...`` entry, or append one when absent."""
    updated = []
    found = False
    for entry in env:
        key = entry.split("=", 1)[0]
        if key == variable:
            found = True
            updated.append(f"{key}={value}")
        else:
            updated.append(entry)
    if not found:
        updated.append(f"{variable}={value}")
    return updated


class InstanceService:
    """Instance lifecycle operations.

    Each mutation loads the instance, checks that the caller may act on it
    and that it is not suspended, performs the node agent call (when the
    operation has one) and then rewrites the per-instance record and both
    list views. Nothing is written locally when the agent call fails.
    """

    def __init__(
        self,
        instances: InstanceRepository,
        images: KVImageRepository,
        agent: NodeAgent,
        authorizer: Authorizer,
        audit: AuditLog,
        settings: Settings,
    ):
        self.instances = instances
        self.images = images
        self.agent = agent
        self.authorizer = authorizer
        self.audit = audit
        self.settings = settings

    # -------------------------------
    # Loading & policy
    # -------------------------------
    async def _load(self, instance_id: str, user: CurrentUser) -> Instance:
        instance = await self.instances.get(instance_id)
        if instance is None:
            raise NotFoundError("Instance not found")

        if not await self.authorizer.is_user_authorized(user.user_id, instance.id):
            logger.warning("User %s denied access to instance %s", user.user_id, instance_id)
            raise AuthorizationError()

        await self.instances.persist_suspended_flag(instance_id)
        if instance.suspended:
            raise SuspendedError(instance_id)
        return instance

    async def _audit(self, user: CurrentUser, action: str, ip: str | None, details: Dict[str, Any]) -> None:
        await self.audit.record(user.user_id, user.username, action, ip, details)

    # -------------------------------
    # Startup page
    # -------------------------------
    async def startup_view(self, instance_id: str, user: CurrentUser) -> Dict[str, Any]:
        instance = await self._load(instance_id, user)
        store = self.instances.store
        return {
            "name": await store.get("name") or self.settings.PANEL_NAME,
            "logo": await store.get("logo") or False,
            "instance": instance.to_record(),
            "alt_images": instance.alt_images,
        }

    # -------------------------------
    # Reinstall
    # -------------------------------
    async def reinstall(self, instance_id: str, user: CurrentUser, ip: str | None = None) -> Instance:
        instance = await self._load(instance_id, user)

        required = {
            "Image": instance.image,
            "Memory": instance.memory,
            "Cpu": instance.cpu,
            "Name": instance.name,
            "User": instance.user,
            "Primary": instance.primary,
            "Node": instance.node,
        }
        missing = [key for key, value in required.items() if not value]
        if missing:
            raise ValidationError("Missing required parameters", details={"missing": missing})

        image_entry = await self.images.find(instance.image)
        request = request_builder.build_reinstall_request(instance, image_entry, self.settings)
        response = await self.agent.send(request)

        new_container_id = response.get("containerId")
        if not new_container_id:
            raise RemoteError("Invalid response from node", upstream_body=response)

        now = _now()
        updated = replace(
            instance,
            container_id=new_container_id,
            volume_id=instance.id,
            memory=request.json["Memory"],
            cpu=request.json["Cpu"],
            alt_images=list(image_entry.alt_images) if image_entry else [],
            image_data=dict(image_entry.raw) if image_entry else {},
            created_at=instance.created_at or now,
            updated_at=now,
        )
        await self.instances.save(updated, key_id=instance_id)
        logger.info(
            "Reinstalled instance %s: container %s -> %s",
            instance.id, instance.container_id, new_container_id,
        )

        await self._audit(user, "instance:reinstall", ip, {
            "instanceId": instance.id,
            "name": instance.name,
            "oldContainerId": instance.container_id,
            "newContainerId": new_container_id,
        })
        return updated

    # -------------------------------
    # Edit (admin)
    # -------------------------------
    async def edit(
        self,
        instance_id: str,
        user: CurrentUser,
        *,
        image: Optional[str] = None,
        memory: Any = None,
        cpu: Any = None,
        ip: str | None = None,
    ) -> Dict[str, Any]:
        if _blank(image) and _blank(memory) and _blank(cpu):
            raise ValidationError("At least one update parameter (Image, Memory, Cpu) is required")
        memory = _positive_number(memory, "Memory")
        cpu = _positive_number(cpu, "CPU")
        image = image or None

        instance = await self._load(instance_id, user)
        if instance.node is None or not instance.node.is_reachable:
            raise ValidationError("Invalid node configuration for this instance")

        request = request_builder.build_edit_request(
            instance, self.settings, image=image, memory=memory, cpu=cpu
        )
        response = await self.agent.send(request)

        new_container_id = response.get("newContainerId")
        if not new_container_id:
            raise RemoteError("Invalid response from node API", upstream_body=response)

        updated = replace(
            instance,
            image=image or instance.image,
            memory=memory or instance.memory,
            cpu=cpu or instance.cpu,
            container_id=new_container_id,
            updated_at=_now(),
        )
        await self.instances.move(updated, old_key_id=instance_id, old_container_id=instance.container_id)

        changes = {
            "Image": "updated" if image else "unchanged",
            "Memory": "updated" if memory else "unchanged",
            "Cpu": "updated" if cpu else "unchanged",
        }
        logger.info("Edited instance %s: %s, now keyed by %s", instance.id, changes, new_container_id)

        await self._audit(user, "instance:edit", ip, {
            "oldContainerId": instance_id,
            "newContainerId": new_container_id,
            "changes": {"Image": image, "Memory": memory, "Cpu": cpu},
        })
        return {
            "message": "Instance updated successfully",
            "oldContainerId": instance_id,
            "newContainerId": new_container_id,
            "changes": changes,
        }

    # -------------------------------
    # Rename
    # -------------------------------
    async def rename(
        self,
        instance_id: str,
        new_name: Any,
        user: CurrentUser,
        ip: str | None = None,
    ) -> Instance:
        if not new_name:
            raise ValidationError("Missing parameters")
        if not isinstance(new_name, str) or not NAME_MIN_LENGTH <= len(new_name) <= NAME_MAX_LENGTH:
            raise ValidationError(
                f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
            )

        instance = await self._load(instance_id, user)
        if await self.instances.name_taken(new_name, exclude_id=instance.id):
            raise ValidationError("Instance name already in use")

        updated = replace(instance, name=new_name, updated_at=_now())
        await self.instances.save(updated, key_id=instance_id)

        # The local name is authoritative; the agent is told best-effort.
        if instance.node is not None and instance.container_id:
            request = request_builder.build_rename_request(instance, new_name, self.settings)
            try:
                await self.agent.send(request)
            except RemoteError as exc:
                logger.warning(
                    "Failed to update container name on node for instance %s: %s",
                    instance.id, exc.message,
                )

        await self._audit(user, "instance:rename", ip, {"oldName": instance.name, "newName": new_name})
        return updated

    # -------------------------------
    # Environment variables
    # -------------------------------
    async def change_variable(
        self,
        instance_id: str,
        variable: Optional[str],
        value: Optional[str],
        user: CurrentUser,
        ip: str | None = None,
    ) -> Instance:
        if not variable:
            raise ValidationError("Missing parameters")
        value = value or ""

        instance = await self._load(instance_id, user)
        updated = replace(
            instance,
            env=set_env_variable(instance.env, variable, value),
            updated_at=_now(),
        )
        await self.instances.save(updated, key_id=instance_id)

        await self._audit(user, "instance:variableChange", ip, {"variable": variable, "value": value})
        return updated

    # -------------------------------
    # Image change
    # -------------------------------
    async def change_image(
        self,
        instance_id: str,
        image: Optional[str],
        acting_user_id: Optional[str],
        user: CurrentUser,
        ip: str | None = None,
    ) -> Instance:
        instance = await self._load(instance_id, user)

        node_id = instance.node.id if instance.node else None
        if not image or not acting_user_id or not node_id:
            raise ValidationError("Missing parameters")

        node = await self.instances.get_node(node_id)
        if node is None:
            raise ValidationError("Invalid node")

        # Image stays the catalog image the instance was created from;
        # currentimage tracks the one actually running.
        base_image = (instance.image_data or {}).get("Image") or instance.image
        base_entry = await self.images.find(base_image)
        image_entry = await self.images.find(image) or base_entry

        request = request_builder.build_redeploy_request(instance, node, image, image_entry, self.settings)
        response = await self.agent.send(request)

        new_container_id = response.get("containerId")
        if not new_container_id:
            raise RemoteError("Invalid response from node", upstream_body=response)

        updated = replace(
            instance,
            node=node,
            container_id=new_container_id,
            volume_id=instance.id,
            image=base_image,
            current_image=image,
            alt_images=list(base_entry.alt_images) if base_entry else [],
            suspended=False,
            updated_at=_now(),
        )
        await self.instances.save(updated, key_id=instance_id)
        logger.info(
            "Instance %s now runs %s (was %s)",
            instance.id, image, instance.current_image or instance.image,
        )

        await self._audit(user, "instance:imageChange", ip, {
            "oldImage": instance.current_image or instance.image,
            "newImage": image,
            "requestedBy": acting_user_id,
        })
        return updated
