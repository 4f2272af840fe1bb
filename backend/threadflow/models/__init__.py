"""ORM model package — registers all models with Base.metadata."""

from threadflow.models.profile import Profile
from threadflow.models.project import Project, ProjectStatus, derive_title

__all__ = [
    "Profile",
    "Project",
    "ProjectStatus",
    "derive_title",
]
