from fastapi import Depends, Request

from hydra_panel.core.errors import AuthenticationRequired, AuthorizationError
from hydra_panel.domain.user import CurrentUser
from hydra_panel.services.instance_service import InstanceService

SESSION_USER_KEY = "user"


def get_instance_service(request: Request) -> InstanceService:
    return request.app.state.instance_service


def get_current_user(request: Request) -> CurrentUser:
    """User placed in the session by the login flow."""
    data = request.session.get(SESSION_USER_KEY)
    if not data or not data.get("userId"):
        raise AuthenticationRequired()
    return CurrentUser(
        user_id=data["userId"],
        username=data.get("username", ""),
        admin=data.get("admin") is True,
    )


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.admin:
        raise AuthorizationError("Forbidden: Admin access required")
    return user


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None
