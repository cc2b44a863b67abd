from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional, Union


class InstanceEditRequest(BaseModel):
    Image: Optional[str] = Field(None, description="New image reference, e.g. ghcr.io/org/paper:latest")
    Memory: Optional[Union[float, str]] = Field(None, description="Memory limit, positive number")
    Cpu: Optional[Union[float, str]] = Field(None, description="CPU limit, positive number")


class InstanceEditResponse(BaseModel):
    message: str
    oldContainerId: str
    newContainerId: str
    changes: Dict[str, Literal["updated", "unchanged"]]


class RenameRequest(BaseModel):
    newName: Optional[Any] = None


class SuccessResponse(BaseModel):
    success: bool = True


class StartupResponse(BaseModel):
    name: str
    logo: Any = False
    instance: Dict[str, Any]
    alt_images: List[Any]

    class Config:
        json_schema_extra = {
            "example": {
                "name": "HydraPanel",
                "logo": False,
                "instance": {"Id": "0f3c", "Name": "survival", "Image": "ghcr.io/skyport/paper:java21"},
                "alt_images": ["ghcr.io/skyport/paper:java17"],
            }
        }
