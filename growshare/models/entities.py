"""Dataclass-style entity representations."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from flask_login import UserMixin

from . import levels
from .badges import Badge


class Role(enum.Flag):
    """Capability tags an account can hold at the same time."""

    NONE = 0
    GROWER = enum.auto()
    LANDOWNER = enum.auto()
    ADMIN = enum.auto()

    @classmethod
    def parse(cls, names) -> "Role":
        """Build a flag set from role names such as ``["GROWER", "ADMIN"]``."""

        value = cls.NONE
        for name in names:
            try:
                value |= cls[str(name).upper()]
            except KeyError as exc:
                raise ValueError(f"Unsupported role '{name}'") from exc
        return value

    def names(self) -> list[str]:
        return [member.name for member in Role if member.value and member in self]


class ReservationStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


# Statuses that hold a resource's calendar.
BLOCKING_STATUSES = (
    ReservationStatus.PENDING,
    ReservationStatus.APPROVED,
    ReservationStatus.ACTIVE,
)

TERMINAL_STATUSES = frozenset(
    {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED, ReservationStatus.REJECTED}
)

ALLOWED_TRANSITIONS = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.APPROVED, ReservationStatus.REJECTED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.APPROVED: frozenset({ReservationStatus.ACTIVE, ReservationStatus.CANCELLED}),
    ReservationStatus.ACTIVE: frozenset({ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}),
}


class CaseStatus(str, enum.Enum):
    """Lifecycle shared by disputes and content reports."""

    PENDING = "PENDING"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"


@dataclass
class Account(UserMixin):
    """Marketplace participant, compatible with Flask-Login."""

    account_id: int
    subject: str
    email: str
    username: str
    first_name: str
    last_name: str
    roles: Role
    total_points: int
    level: int
    email_verified: bool
    phone_verified: bool
    id_verified: bool
    profile_visibility: str
    allow_messages: str
    created_at: datetime
    is_active: bool = True

    def get_id(self) -> str:
        return str(self.account_id)

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.username

    def has_role(self, role: Role) -> bool:
        return bool(self.roles & role)

    def to_public_dict(self) -> dict:
        return {
            "id": self.account_id,
            "username": self.username,
            "displayName": self.display_name,
            "roles": self.roles.names(),
            "totalPoints": self.total_points,
            "level": self.level,
            "levelTitle": levels.level_title(self.level),
            "verified": {
                "email": self.email_verified,
                "phone": self.phone_verified,
                "governmentId": self.id_verified,
            },
        }

    def to_private_dict(self) -> dict:
        data = self.to_public_dict()
        data.update(
            {
                "email": self.email,
                "firstName": self.first_name,
                "lastName": self.last_name,
                "progressPercent": levels.progress_percent(self.total_points),
                "nextLevelPoints": levels.points_for_next_level(self.level),
                "profileVisibility": self.profile_visibility,
                "allowMessages": self.allow_messages,
                "createdAt": self.created_at.isoformat(),
            }
        )
        return data


@dataclass
class Resource:
    """Bookable land plot or tool."""

    resource_id: int
    owner_id: int
    kind: str
    title: str
    description: str
    location: str
    rate: float
    minimum_duration: int
    instant_book: bool
    status: str
    created_at: datetime
    average_rating: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "id": self.resource_id,
            "ownerId": self.owner_id,
            "kind": self.kind,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "rate": self.rate,
            "minimumDuration": self.minimum_duration,
            "instantBook": self.instant_book,
            "status": self.status,
            "averageRating": self.average_rating,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class Reservation:
    """Time-boxed booking of a resource from start_date to end_date."""

    reservation_id: int
    resource_id: int
    renter_id: int
    start_date: date
    end_date: date
    status: ReservationStatus
    rate: float
    total_amount: float
    message: Optional[str]
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.reservation_id,
            "resourceId": self.resource_id,
            "renterId": self.renter_id,
            "start": self.start_date.isoformat(),
            "end": self.end_date.isoformat(),
            "status": self.status.value,
            "rate": self.rate,
            "totalAmount": self.total_amount,
            "message": self.message,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class BlackoutRange:
    """Owner-declared interval during which a resource cannot be booked."""

    blackout_id: int
    resource_id: int
    start_date: date
    end_date: date
    reason: Optional[str]

    def to_dict(self) -> dict:
        return {
            "id": self.blackout_id,
            "start": self.start_date.isoformat(),
            "end": self.end_date.isoformat(),
            "reason": self.reason,
        }


@dataclass
class Availability:
    """Result of an availability query over a window."""

    resource: Resource
    window_start: date
    window_end: date
    reservations: list[Reservation]
    blackout_ranges: list[BlackoutRange]

    @property
    def available(self) -> bool:
        return not self.reservations and not self.blackout_ranges


@dataclass
class PointsEvent:
    """Immutable gamification ledger entry."""

    event_id: int
    account_id: int
    category: str
    points: int
    title: str
    metadata: Optional[dict]
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.event_id,
            "category": self.category,
            "points": self.points,
            "title": self.title,
            "metadata": self.metadata,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class Activity:
    """User-visible feed entry."""

    activity_id: int
    account_id: int
    type: str
    title: str
    description: Optional[str]
    points: int
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.activity_id,
            "accountId": self.account_id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "points": self.points,
            "timestamp": self.created_at.isoformat(),
        }


@dataclass
class EarnedBadge:
    """A catalogue badge held by an account."""

    badge: Badge
    earned_at: datetime

    def to_dict(self) -> dict:
        payload = self.badge.to_dict()
        payload["earnedAt"] = self.earned_at.isoformat()
        return payload


@dataclass
class Message:
    """Direct message between two accounts."""

    message_id: int
    sender_id: int
    receiver_id: int
    content: str
    is_read: bool
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.message_id,
            "senderId": self.sender_id,
            "receiverId": self.receiver_id,
            "content": self.content,
            "isRead": self.is_read,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Review:
    """Review for a resource."""

    review_id: int
    resource_id: int
    reviewer_id: int
    rating: int
    comment: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.review_id,
            "resourceId": self.resource_id,
            "reviewerId": self.reviewer_id,
            "rating": self.rating,
            "comment": self.comment,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Dispute:
    """Dispute filed by one reservation party against the other."""

    dispute_id: int
    reservation_id: int
    filed_by: int
    against_id: int
    reason: str
    description: str
    requested_amount: Optional[float]
    status: CaseStatus
    resolution_note: Optional[str]
    resolved_by: Optional[int]
    created_at: datetime
    resolved_at: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "id": self.dispute_id,
            "reservationId": self.reservation_id,
            "filedBy": self.filed_by,
            "againstId": self.against_id,
            "reason": self.reason,
            "description": self.description,
            "requestedAmount": self.requested_amount,
            "status": self.status.value,
            "resolutionNote": self.resolution_note,
            "resolvedBy": self.resolved_by,
            "createdAt": self.created_at.isoformat(),
            "resolvedAt": self.resolved_at.isoformat() if self.resolved_at else None,
        }


@dataclass
class Report:
    """Moderation report against a piece of content."""

    report_id: int
    reporter_id: int
    reported_account_id: Optional[int]
    content_type: str
    content_id: int
    reason: str
    details: Optional[str]
    status: CaseStatus
    resolution_note: Optional[str]
    resolved_by: Optional[int]
    created_at: datetime
    resolved_at: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "id": self.report_id,
            "reporterId": self.reporter_id,
            "reportedAccountId": self.reported_account_id,
            "contentType": self.content_type,
            "contentId": self.content_id,
            "reason": self.reason,
            "details": self.details,
            "status": self.status.value,
            "resolutionNote": self.resolution_note,
            "resolvedBy": self.resolved_by,
            "createdAt": self.created_at.isoformat(),
            "resolvedAt": self.resolved_at.isoformat() if self.resolved_at else None,
        }
