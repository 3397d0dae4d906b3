# Database Models
from src.models.base import Base, TimestampMixin
from src.models.site import Site

__all__ = [
    "Base",
    "Site",
    "TimestampMixin",
]
