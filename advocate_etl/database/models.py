"""SQLAlchemy models for the projected collections and the quarantine table."""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from advocate_etl.core.database import Base


class User(Base):
    """Advocate profile, keyed by the upstream user_id."""

    __tablename__ = "users"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, index=True)
    instagram_handle: Mapped[str | None] = mapped_column(String, nullable=True)
    tiktok_handle: Mapped[str | None] = mapped_column(String, nullable=True)
    joined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    data_quality: Mapped[dict | None] = mapped_column(
        JSON, nullable=True, comment="is_clean, issues, severity"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    memberships: Mapped[list["ProgramMembership"]] = relationship(
        "ProgramMembership", back_populates="user", cascade="all, delete-orphan"
    )


class Brand(Base):
    """Brand running advocacy programs. brand_id is derived from the name."""

    __tablename__ = "brands"

    brand_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    programs: Mapped[list["Program"]] = relationship("Program", back_populates="brand")


class Program(Base):
    """Advocacy program owned by a brand."""

    __tablename__ = "programs"

    program_id: Mapped[str] = mapped_column(String, primary_key=True)
    brand_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("brands.brand_id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    brand: Mapped["Brand"] = relationship("Brand", back_populates="programs")


class ProgramMembership(Base):
    """A user's participation in one program, with per-program counters."""

    __tablename__ = "program_memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "program_id", name="uq_program_memberships_user_program"),
    )

    membership_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    program_id: Mapped[str] = mapped_column(
        String, ForeignKey("programs.program_id"), nullable=False, index=True
    )
    brand_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("brands.brand_id"), nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, comment="Earliest joined_at seen for this pair"
    )
    tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sales_attributed: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="memberships")


class Task(Base):
    """Completed advocacy task. brand_name is denormalized for read-side queries."""

    __tablename__ = "tasks"

    task_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    program_id: Mapped[str] = mapped_column(
        String, ForeignKey("programs.program_id"), nullable=False, index=True
    )
    membership_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    brand_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("brands.brand_id"), nullable=False
    )
    brand_name: Mapped[str] = mapped_column(String, nullable=False)
    platform: Mapped[str] = mapped_column(
        String, nullable=False
    )  # Instagram | TikTok | Facebook
    post_url: Mapped[str | None] = mapped_column(String, nullable=True)
    likes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    comments: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    shares: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    reach: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    engagement_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class FailedImport(Base):
    """Quarantined source document awaiting manual correction, retry or ignore."""

    __tablename__ = "failed_imports"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    file_path: Mapped[str] = mapped_column(String, nullable=False)
    raw_data: Mapped[str] = mapped_column(Text, nullable=False)
    error_type: Mapped[str] = mapped_column(
        String, nullable=False
    )  # json_parse_error | validation_error | transformation_error | database_error
    error_message: Mapped[str] = mapped_column(Text, nullable=False)
    error_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    attempted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="failed", index=True
    )  # failed | retrying | fixed | ignored
    fixed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_retry_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
