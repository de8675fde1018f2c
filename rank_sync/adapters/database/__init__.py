"""Database adapter package."""

from .manager import DatabaseManager
from .models import Base

__all__ = ["DatabaseManager", "Base"]
