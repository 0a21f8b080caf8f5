"""
GlucoTrack Database Models
SQLAlchemy 2.0 ORM models for readings, reports and dashboard settings
"""

from datetime import datetime
from typing import Any, List, Optional
from sqlalchemy import (
    DateTime, Float, Integer, String, Text, Index, CheckConstraint, JSON
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models"""
    pass


class TimestampMixin:
    """Mixin for created_at timestamp"""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )


# =============================================================================
# Reading Models
# =============================================================================

class GlucoseReading(Base, TimestampMixin):
    """A glucose reading, entered manually or promoted from an extraction"""
    __tablename__ = "glucose_readings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    glucose_level: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(10), default="mg/dL", nullable=False)
    meal_tag: Mapped[Optional[str]] = mapped_column(String(50))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    __table_args__ = (
        CheckConstraint("glucose_level > 0", name="positive_glucose_level"),
        Index("idx_reading_unit", "unit"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "glucose_level": self.glucose_level,
            "unit": self.unit,
            "meal_tag": self.meal_tag,
            "notes": self.notes,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self) -> str:
        return f"<GlucoseReading(id={self.id}, level={self.glucose_level} {self.unit}, at={self.timestamp})>"


# =============================================================================
# Report Models
# =============================================================================

class Report(Base, TimestampMixin):
    """An uploaded report with its decoded text and extracted values"""
    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    filename: Mapped[Optional[str]] = mapped_column(String(255))
    extracted_text: Mapped[Optional[str]] = mapped_column(Text)
    extracted_values: Mapped[List[Any]] = mapped_column(JSON, default=list, nullable=False)
    scan_mode: Mapped[str] = mapped_column(String(20), default="strict", nullable=False)
    value_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Report(id={self.id}, filename={self.filename}, values={self.value_count})>"


# =============================================================================
# Settings Models
# =============================================================================

class DashboardSettings(Base):
    """Single-row dashboard settings"""
    __tablename__ = "dashboard_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    normal_min: Mapped[float] = mapped_column(Float, nullable=False)
    normal_max: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(10), nullable=False)
    theme: Mapped[str] = mapped_column(String(10), default="auto", nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    __table_args__ = (
        CheckConstraint("normal_min < normal_max", name="valid_normal_range"),
    )

    def __repr__(self) -> str:
        return f"<DashboardSettings(range={self.normal_min}-{self.normal_max} {self.unit}, theme={self.theme})>"
