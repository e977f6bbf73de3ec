"""ORM models. Importing this package registers every table with Base.metadata."""

from app.models.project import ProjectStatus, VoiceProject
from app.models.sample import VoiceSample
from app.models.user import User

__all__ = ["ProjectStatus", "User", "VoiceProject", "VoiceSample"]
