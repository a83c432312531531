"""Database package."""

from taskflow.db.base import Base, BaseModel
from taskflow.db.repository import Repository
from taskflow.db.session import DBSession, get_db_session

__all__ = ["Base", "BaseModel", "DBSession", "Repository", "get_db_session"]
