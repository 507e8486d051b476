"""
Eco activities submitted by simple users for credit.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from greyn.kernel.models.base import Base, TimestampMixin, generate_uuid, utcnow


class ActivityType(str, Enum):
    PLANT_TREE = "plant-tree"
    CLEANUP = "cleanup"
    RECYCLE = "recycle"
    ENERGY_SAVE = "energy-save"
    WATER_CONSERVE = "water-conserve"
    EDUCATION = "education"
    COMPOST = "compost"
    BIKE_WALK = "bike-walk"


class ActivityStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    UNVERIFIED = "unverified"


ACTIVITY_CREDITS: Dict[str, int] = {
    ActivityType.PLANT_TREE.value: 50,
    ActivityType.CLEANUP.value: 75,
    ActivityType.RECYCLE.value: 30,
    ActivityType.ENERGY_SAVE.value: 25,
    ActivityType.WATER_CONSERVE.value: 40,
    ActivityType.EDUCATION.value: 60,
    ActivityType.COMPOST.value: 35,
    ActivityType.BIKE_WALK.value: 20,
}

ACTIVITY_LABELS: Dict[str, tuple] = {
    ActivityType.PLANT_TREE.value: ("Plant Tree", "Plant trees and provide proof with photos"),
    ActivityType.CLEANUP.value: ("Cleanup Activity", "Organize or participate in beach/park/street cleanup"),
    ActivityType.RECYCLE.value: ("Recycling", "Recycle materials and document the process"),
    ActivityType.ENERGY_SAVE.value: ("Energy Saving", "Implement energy-saving measures and show proof"),
    ActivityType.WATER_CONSERVE.value: ("Water Conservation", "Install water-saving devices or practices"),
    ActivityType.EDUCATION.value: ("Environmental Education", "Educate others about environmental issues"),
    ActivityType.COMPOST.value: ("Composting", "Start composting and document the process"),
    ActivityType.BIKE_WALK.value: ("Bike/Walk Commute", "Use eco-friendly transportation methods"),
}


def credits_for(activity_type: str) -> int:
    """Credits awarded for an activity type. Raises ValueError for unknown types."""
    try:
        return ACTIVITY_CREDITS[activity_type]
    except KeyError:
        raise ValueError(f"Unknown activity type: {activity_type}")


class Activity(Base, TimestampMixin):
    """A user's eco activity awaiting or past admin verification."""

    __tablename__ = "activities"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[ActivityType] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    proof_image: Mapped[str] = mapped_column(String(500), nullable=False)
    credits: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[ActivityStatus] = mapped_column(
        String(20),
        default=ActivityStatus.PENDING,
        nullable=False,
    )
    submitted_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    verified_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    verified_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(), nullable=True)
    admin_notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    __table_args__ = (
        Index("ix_activities_user_submitted", "user_id", "submitted_date"),
        Index("ix_activities_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Activity {self.type} {self.status}>"
