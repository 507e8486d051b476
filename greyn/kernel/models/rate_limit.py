"""
Admin-managed rate limit policies.

The status column is a display label derived from current/limit; it is
recomputed whenever a row is inserted or updated.
"""

import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String, UniqueConstraint, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column

from greyn.kernel.models.base import Base, TimestampMixin, enum_value, generate_uuid, utcnow


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    ALL = "ALL"


class RateLimitWindow(str, Enum):
    FIFTEEN_MINUTES = "15 minutes"
    ONE_HOUR = "1 hour"
    ONE_DAY = "24 hours"
    ONE_WEEK = "1 week"


class RateLimitStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"
    EXCEEDED = "exceeded"


class RateLimitCategory(str, Enum):
    AUTHENTICATION = "authentication"
    API = "api"
    ADMIN = "admin"
    DATA = "data"
    PAYMENT = "payment"
    OTHER = "other"


class RecordSource(str, Enum):
    SEED = "seed"
    MANUAL = "manual"


WINDOW_DURATIONS: Dict[str, timedelta] = {
    RateLimitWindow.FIFTEEN_MINUTES.value: timedelta(minutes=15),
    RateLimitWindow.ONE_HOUR.value: timedelta(hours=1),
    RateLimitWindow.ONE_DAY.value: timedelta(days=1),
    RateLimitWindow.ONE_WEEK.value: timedelta(days=7),
}


def compute_status(current: int, limit: int) -> RateLimitStatus:
    """Map usage to a status label: >=100% exceeded, >=90% critical, >=70% warning."""
    if current >= limit:
        return RateLimitStatus.EXCEEDED
    percentage = (current / limit) * 100 if limit else 100
    if percentage >= 90:
        return RateLimitStatus.CRITICAL
    if percentage >= 70:
        return RateLimitStatus.WARNING
    return RateLimitStatus.NORMAL


class RateLimit(Base, TimestampMixin):
    """A per-endpoint request budget shown on the admin security console."""

    __tablename__ = "rate_limits"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    endpoint: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    method: Mapped[HttpMethod] = mapped_column(String(10), nullable=False, default=HttpMethod.GET)
    limit: Mapped[int] = mapped_column(Integer, nullable=False)
    window: Mapped[RateLimitWindow] = mapped_column(String(20), nullable=False)
    current: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[RateLimitStatus] = mapped_column(
        String(20),
        default=RateLimitStatus.NORMAL,
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    category: Mapped[RateLimitCategory] = mapped_column(
        String(20),
        default=RateLimitCategory.API,
        nullable=False,
        index=True,
    )
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    source: Mapped[RecordSource] = mapped_column(String(10), default=RecordSource.MANUAL, nullable=False)
    blocked_requests: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    average_response_time: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    last_reset: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    next_reset: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(), nullable=True)

    __table_args__ = (
        UniqueConstraint("endpoint", "method", name="uq_rate_limits_endpoint_method"),
    )

    @property
    def percentage(self) -> int:
        """Usage as a whole percentage, capped at 100."""
        if not self.limit:
            return 100
        return min(100, round((self.current or 0) / self.limit * 100))

    def refresh_status(self) -> RateLimitStatus:
        self.status = compute_status(self.current or 0, self.limit)
        return self.status

    def calculate_next_reset(self, start: Optional[datetime] = None) -> datetime:
        start = start or utcnow()
        return start + WINDOW_DURATIONS.get(enum_value(self.window), timedelta(hours=1))

    def reset_counter(self) -> None:
        now = utcnow()
        self.current = 0
        self.last_reset = now
        self.next_reset = self.calculate_next_reset(now)
        self.refresh_status()

    def __repr__(self) -> str:
        return f"<RateLimit {enum_value(self.method)} {self.endpoint} {self.current}/{self.limit}>"


@event.listens_for(RateLimit, "before_insert")
def _rate_limit_before_insert(mapper, connection, target: RateLimit) -> None:
    if target.next_reset is None:
        target.next_reset = target.calculate_next_reset()
    target.refresh_status()


@event.listens_for(RateLimit, "before_update")
def _rate_limit_before_update(mapper, connection, target: RateLimit) -> None:
    target.refresh_status()
