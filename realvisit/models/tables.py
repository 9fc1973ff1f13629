"""
Database models.

  - A Project is one tracked product page in a shop
  - A Snapshot is a measurement period for a project with a target count of
    REAL visitors; it completes when the target is reached
  - A Visit is one session on the product page within a snapshot.
    Unique on (session_id, snapshot_id): tracker beacons for the same
    session upsert the same row, and only the derived verdict + score and
    raw flags are stored (never the mouse trail)
"""

import datetime
import enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, relationship

from realvisit.config import get_settings
from realvisit.core.classifier import VisitorType


class Base(DeclarativeBase):
    pass


class SnapshotStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"


def _default_target_visitors() -> int:
    return get_settings().default_target_visitors


# ---------------------------------------------------------------------------
# Entity tables
# ---------------------------------------------------------------------------

class Project(Base):
    __tablename__ = "projects"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    shop = Column(String(255), nullable=False, index=True)
    product_id = Column(String(100), nullable=False, index=True)
    product_title = Column(String(500), nullable=False)
    product_handle = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    snapshots = relationship("Snapshot", back_populates="project", cascade="all, delete-orphan")


class Snapshot(Base):
    __tablename__ = "snapshots"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    number = Column(Integer, nullable=False)
    name = Column(String(255), nullable=True)
    target_visitors = Column(Integer, nullable=False, default=_default_target_visitors)
    status = Column(
        Enum(SnapshotStatus, name="snapshot_status"),
        nullable=False,
        default=SnapshotStatus.ACTIVE,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    project = relationship("Project", back_populates="snapshots")
    visits = relationship("Visit", back_populates="snapshot", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_snapshots_project_number", "project_id", "number", unique=True),
        Index("ix_snapshots_project_status", "project_id", "status"),
    )

    def mark_completed(self, now: datetime.datetime | None = None) -> None:
        self.status = SnapshotStatus.COMPLETED
        self.completed_at = now or datetime.datetime.now(datetime.timezone.utc)


# ---------------------------------------------------------------------------
# Visits
# ---------------------------------------------------------------------------

class Visit(Base):
    __tablename__ = "visits"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    snapshot_id = Column(UUID(as_uuid=True), ForeignKey("snapshots.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(String(100), nullable=False, index=True)

    # --- Verdict ---
    visitor_type = Column(
        Enum(VisitorType, name="visitor_type"),
        nullable=False,
        default=VisitorType.PENDING,
        index=True,
    )
    bot_score = Column(Integer, nullable=False, default=0)

    # --- Traffic source (first beacon wins) ---
    source = Column(String(255), nullable=True)
    medium = Column(String(255), nullable=True)
    campaign = Column(String(255), nullable=True)
    referrer = Column(Text, nullable=True)
    source_category = Column(String(50), nullable=True, index=True)

    # --- Engagement ---
    time_on_page = Column(Integer, nullable=False, default=0)       # ms
    scroll_depth = Column(Integer, nullable=False, default=0)       # 0–100
    mouse_movements = Column(Integer, nullable=False, default=0)
    key_presses = Column(Integer, nullable=False, default=0)
    touch_events = Column(Integer, nullable=False, default=0)

    # --- Network / geo ---
    ip_address = Column(String(64), nullable=True)
    country = Column(String(100), nullable=True)
    country_code = Column(String(2), nullable=True, index=True)
    city = Column(String(255), nullable=True)
    region = Column(String(255), nullable=True)
    timezone = Column(String(64), nullable=True)

    # --- Behavior signals ---
    has_mouse_moved = Column(Boolean, nullable=False, default=False)
    has_scrolled = Column(Boolean, nullable=False, default=False)
    has_key_pressed = Column(Boolean, nullable=False, default=False)
    has_touched = Column(Boolean, nullable=False, default=False)

    # --- Bot signals ---
    is_webdriver = Column(Boolean, nullable=False, default=False)
    suspicious_ua = Column(Boolean, nullable=False, default=False)
    linear_movement = Column(Boolean, nullable=False, default=False)
    datacenter_ip = Column(Boolean, nullable=False, default=False)
    datacenter_provider = Column(String(50), nullable=True)

    # --- Conversion ---
    added_to_cart = Column(Boolean, nullable=False, default=False)
    added_to_cart_at = Column(DateTime(timezone=True), nullable=True)
    converted = Column(Boolean, nullable=False, default=False)
    converted_at = Column(DateTime(timezone=True), nullable=True)

    # --- Lifecycle ---
    exit_type = Column(String(30), nullable=True)    # checkout, internal_link, back_button, idle, ...
    started_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)

    # --- Device ---
    user_agent = Column(Text, nullable=True)
    device_type = Column(String(20), nullable=True)

    snapshot = relationship("Snapshot", back_populates="visits")

    __table_args__ = (
        Index("ix_visits_session_snapshot", "session_id", "snapshot_id", unique=True),
    )
