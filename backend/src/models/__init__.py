"""SQLAlchemy models."""
from models.base import Base, TimestampMixin
from models.tag import Tag, prompt_tags  # Must be before prompt due to import
from models.category import Category
from models.execution import Execution
from models.prompt import Prompt, Visibility
from models.user import User
from models.user_session import UserSession

__all__ = [
    "Base",
    "Category",
    "Execution",
    "Prompt",
    "Tag",
    "TimestampMixin",
    "User",
    "UserSession",
    "Visibility",
    "prompt_tags",
]
