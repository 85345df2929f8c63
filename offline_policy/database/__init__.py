"""Database module for SQLAlchemy models and session management."""

from offline_policy.database.base import Base, engine, async_session_maker
from offline_policy.database.client import DatabaseClient, db_client, init_database, close_database
from offline_policy.database.models import Agent, Employee, Policy

__all__ = [
    "Base",
    "engine",
    "async_session_maker",
    "DatabaseClient",
    "db_client",
    "init_database",
    "close_database",
    "Agent",
    "Employee",
    "Policy",
]
