"""Database module for SQLAlchemy models."""

from advocate_etl.database.models import (
    Brand,
    FailedImport,
    Program,
    ProgramMembership,
    Task,
    User,
)

__all__ = [
    "User",
    "Brand",
    "Program",
    "ProgramMembership",
    "Task",
    "FailedImport",
]
