"""
Database module containing session management and base models.
"""
from tribunal.db.base import Base
from tribunal.db.session import async_session_maker, engine, get_db

__all__ = ["get_db", "async_session_maker", "engine", "Base"]
