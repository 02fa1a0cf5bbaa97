"""Model exports."""
from app.models.region import Region
from app.models.project import Project
from app.models.pin import Pin

__all__ = [
    "Region",
    "Project",
    "Pin",
]
