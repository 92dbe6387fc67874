"""Canonical advocate document models.

These models validate a parsed source document and normalize it in one pass.
Source keys are accepted through validation aliases (``advocacy_programs``,
``tasks_completed``, ``brand``) so validation errors carry the same paths as
the upstream document.
"""

import math
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional
from uuid import UUID

from pydantic import AnyUrl, BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, field_validator
from pydantic_core import PydanticCustomError

BROKEN_LINK = "broken_link"
UNSET_NAME = "???"
INVALID_EMAIL = "invalid-email"
ERROR_HANDLE = "#error_handle"
NOT_A_DATE = "not-a-date"

# Largest value a BIGINT counter column holds
MAX_COUNT = 2 ** 63 - 1

_URL_ADAPTER = TypeAdapter(AnyUrl)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


class Platform(str, Enum):
    """Social platforms a task can be posted on."""
    INSTAGRAM = "Instagram"
    TIKTOK = "TikTok"
    FACEBOOK = "Facebook"


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def coerce_count(value: Any) -> int:
    """Coerce an engagement counter to a non-negative int.

    Non-numeric input, NaN, infinities, null and negative values become 0.
    Fractional values are truncated and values past ``MAX_COUNT`` are capped.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return min(max(value, 0), MAX_COUNT)

    number = _to_number(value)
    if number is None or not math.isfinite(number) or number < 0:
        return 0
    return min(int(number), MAX_COUNT)


def coerce_amount(value: Any) -> float:
    """Coerce a sales amount to a non-negative float, defaulting to 0."""
    number = _to_number(value)
    if number is None or not math.isfinite(number) or number < 0:
        return 0.0
    return number


def uuid_string(value: Any) -> str:
    """Accept only the hyphenated 8-4-4-4-12 textual UUID form."""
    if not isinstance(value, str) or not UUID_PATTERN.match(value.strip()):
        raise PydanticCustomError("uuid_format", "Value must be a hyphenated UUID string")
    return value.strip()


def normalize_handle(value: Any) -> Optional[str]:
    """Trim, strip one leading ``@`` and lower-case a social handle."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise PydanticCustomError("handle_type", "Handle must be a string")

    handle = value.strip()
    if handle.startswith("@"):
        handle = handle[1:]
    handle = handle.strip().lower()
    return handle or None


class CanonicalTask(BaseModel):
    """Normalized task completed within a program."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: Optional[UUID] = Field(..., description="Task ID, null when upstream lost it")
    platform: Optional[Platform] = Field(..., description="Platform the task was posted on")
    post_url: Optional[str] = Field(..., description="Post URL, null for broken links")
    likes: int = 0
    comments: int = 0
    shares: int = 0
    reach: int = 0

    @field_validator("task_id", mode="before")
    @classmethod
    def _validate_task_id(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return uuid_string(value)

    @field_validator("likes", "comments", "shares", "reach", mode="before")
    @classmethod
    def _coerce_counters(cls, value: Any) -> int:
        return coerce_count(value)

    @field_validator("platform", mode="before")
    @classmethod
    def _coerce_platform(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise PydanticCustomError(
                "platform_invalid", "Platform must be one of Instagram, TikTok, Facebook"
            )
        # Numeric platforms map to null
        if isinstance(value, (int, float)):
            return None
        return value

    @field_validator("post_url", mode="before")
    @classmethod
    def _validate_post_url(cls, value: Any) -> Optional[str]:
        if value is None or value == BROKEN_LINK:
            return None
        if not isinstance(value, str):
            raise PydanticCustomError("url_type", "post_url must be a string URL")
        try:
            _URL_ADAPTER.validate_python(value)
        except ValueError:
            raise PydanticCustomError("url_parsing", "post_url must be a valid URL")
        return value

    @property
    def engagement_rate(self) -> float:
        """(likes + comments + shares) / reach, 0 when reach is 0."""
        if self.reach == 0:
            return 0.0
        return (self.likes + self.comments + self.shares) / self.reach


class CanonicalProgram(BaseModel):
    """Normalized advocacy program entry."""

    model_config = ConfigDict(populate_by_name=True)

    program_id: str = Field(..., description="Program ID")
    brand_name: Optional[str] = Field(..., validation_alias="brand", description="Owning brand")
    total_sales_attributed: float = 0.0
    tasks: List[CanonicalTask] = Field(..., validation_alias="tasks_completed")

    @field_validator("program_id", mode="before")
    @classmethod
    def _validate_program_id(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise PydanticCustomError("program_id_empty", "program_id must be a non-empty string")
        return value.strip()

    @field_validator("brand_name", mode="before")
    @classmethod
    def _coerce_brand(cls, value: Any) -> Optional[str]:
        if isinstance(value, str):
            return value.strip() or None
        return None

    @field_validator("total_sales_attributed", mode="before")
    @classmethod
    def _coerce_sales(cls, value: Any) -> float:
        return coerce_amount(value)


class CanonicalUser(BaseModel):
    """Normalized advocate with nested programs and tasks."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: UUID = Field(..., description="Upstream user ID")
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Lower-cased email address")
    instagram_handle: Optional[str] = Field(..., description="Instagram handle without @")
    tiktok_handle: Optional[str] = Field(..., description="TikTok handle without @")
    joined_at: Optional[datetime] = Field(..., description="Join timestamp (UTC)")
    programs: List[CanonicalProgram] = Field(..., validation_alias="advocacy_programs")

    @field_validator("user_id", mode="before")
    @classmethod
    def _validate_user_id(cls, value: Any) -> str:
        return uuid_string(value)

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise PydanticCustomError("name_empty", "name must be a non-empty string")
        if value.strip() == UNSET_NAME:
            raise PydanticCustomError("name_unset", "name is unset ('???')")
        return value.strip()

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise PydanticCustomError("email_type", "email must be a string")
        email = value.strip().lower()
        if email == INVALID_EMAIL:
            raise PydanticCustomError("email_invalid", "email is marked invalid upstream")
        return email

    @field_validator("instagram_handle", mode="before")
    @classmethod
    def _normalize_instagram(cls, value: Any) -> Optional[str]:
        return normalize_handle(value)

    @field_validator("tiktok_handle", mode="before")
    @classmethod
    def _normalize_tiktok(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and value.strip() == ERROR_HANDLE:
            return None
        return normalize_handle(value)

    @field_validator("joined_at", mode="before")
    @classmethod
    def _map_date_sentinel(cls, value: Any) -> Any:
        if value is None or value == NOT_A_DATE:
            return None
        if not isinstance(value, str):
            raise PydanticCustomError("datetime_type", "joined_at must be an ISO-8601 string")
        return value

    @field_validator("joined_at")
    @classmethod
    def _ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def platforms_used(self) -> set:
        """Set of platforms referenced by any task across all programs."""
        return {
            task.platform
            for program in self.programs
            for task in program.tasks
            if task.platform is not None
        }


class DataQuality(BaseModel):
    """Data-quality summary stored alongside a projected user."""

    is_clean: bool = Field(..., description="True when no issues were found")
    issues: List[str] = Field(default_factory=list, description="Issue codes")
    severity: str = Field(default="clean", description="clean | warning")
