"""Pydantic v2 schemas package."""

from threadflow.schemas.generation import (
    DashboardRead,
    GenerationRequest,
    GenerationResponse,
)
from threadflow.schemas.profile import ProfileRead, ProfileUpdate
from threadflow.schemas.project import ProjectRead, ProjectSummary
from threadflow.schemas.script import (
    GatewayError,
    GenerateScriptRequest,
    Scene,
    Script,
)

__all__ = [
    "DashboardRead",
    "GenerationRequest",
    "GenerationResponse",
    "ProfileRead",
    "ProfileUpdate",
    "ProjectRead",
    "ProjectSummary",
    "GatewayError",
    "GenerateScriptRequest",
    "Scene",
    "Script",
]
