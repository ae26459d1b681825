"""Capability checks keyed by (actor, action, resource owners).

Every guarded endpoint names an :class:`Action` and the account ids that own the
target; the policy table decides whether the actor may proceed.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Optional

from .errors import Forbidden
from .models.entities import Account, Role


class Action(str, enum.Enum):
    EDIT_RESOURCE = "edit_resource"
    MANAGE_BLACKOUTS = "manage_blackouts"
    VIEW_RESERVATION = "view_reservation"
    DECIDE_RESERVATION = "decide_reservation"
    CANCEL_RESERVATION = "cancel_reservation"
    FILE_DISPUTE = "file_dispute"
    MODERATE = "moderate"


@dataclass(frozen=True)
class Rule:
    """Who may perform an action: listed owners, holders of a role, or both."""

    owners: bool = True
    role: Optional[Role] = Role.ADMIN
    message: str = "You do not have permission to perform this action."


POLICY = {
    Action.EDIT_RESOURCE: Rule(message="Only the owner can modify this listing."),
    Action.MANAGE_BLACKOUTS: Rule(message="Only the plot owner can block dates."),
    Action.VIEW_RESERVATION: Rule(message="You do not have permission to view this booking."),
    Action.DECIDE_RESERVATION: Rule(message="Only the plot owner can approve or reject bookings."),
    Action.CANCEL_RESERVATION: Rule(
        role=None, message="You do not have permission to cancel this booking."
    ),
    Action.FILE_DISPUTE: Rule(role=None, message="You can only file disputes for your own bookings."),
    Action.MODERATE: Rule(owners=False, message="Administrator access required."),
}


def can(actor: Optional[Account], action: Action, owners: Iterable[int] = ()) -> bool:
    """Evaluate the policy for ``action`` without raising."""

    if actor is None or not actor.is_active:
        return False
    rule = POLICY[action]
    if rule.owners and actor.account_id in set(owners):
        return True
    return rule.role is not None and actor.has_role(rule.role)


def authorize(actor: Optional[Account], action: Action, owners: Iterable[int] = ()) -> None:
    """Raise Forbidden unless ``actor`` may perform ``action``."""

    if not can(actor, action, owners):
        raise Forbidden(POLICY[action].message)
