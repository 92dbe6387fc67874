"""Repositories for database access."""

from advocate_etl.repositories.base_repository import BaseRepository
from advocate_etl.repositories.brand_repository import BrandRepository
from advocate_etl.repositories.failed_import_repository import FailedImportRepository
from advocate_etl.repositories.membership_repository import MembershipRepository
from advocate_etl.repositories.program_repository import ProgramRepository
from advocate_etl.repositories.task_repository import TaskRepository
from advocate_etl.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "BrandRepository",
    "FailedImportRepository",
    "MembershipRepository",
    "ProgramRepository",
    "TaskRepository",
    "UserRepository",
]
