"""Profile visibility and messaging permission rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..models.entities import Account
from . import social_dao


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"canView": self.allowed}
        if self.reason:
            data["reason"] = self.reason
        return data


def can_view_profile(viewer_id: Optional[int], profile: Account) -> Decision:
    """Decide whether ``viewer_id`` may see ``profile``.

    Public profiles are visible to everyone. Otherwise the viewer must be signed
    in; owners always see themselves; blocked viewers never do; private profiles
    open only to accounts with message history or a booking relationship.
    """

    # Imported here: both modules import privacy for their permission checks.
    from . import messages_dao, reservations_dao  # pylint: disable=import-outside-toplevel

    if profile.profile_visibility == "PUBLIC":
        return Decision(True)
    if viewer_id is None:
        return Decision(False, "login_required")
    if viewer_id == profile.account_id:
        return Decision(True)
    if social_dao.has_blocked(profile.account_id, viewer_id):
        return Decision(False, "blocked")
    if profile.profile_visibility == "PRIVATE":
        if messages_dao.have_conversed(viewer_id, profile.account_id):
            return Decision(True)
        if reservations_dao.parties_share_reservation(viewer_id, profile.account_id):
            return Decision(True)
        return Decision(False, "private")
    return Decision(True)


def can_message(sender_id: int, receiver: Account) -> Decision:
    """Apply the receiver's block list and ``allow_messages`` setting."""

    from . import messages_dao, reservations_dao  # pylint: disable=import-outside-toplevel

    if social_dao.has_blocked(receiver.account_id, sender_id):
        return Decision(False, "blocked")
    if receiver.allow_messages == "EVERYONE":
        return Decision(True)
    if receiver.allow_messages == "FOLLOWERS" and social_dao.is_following(sender_id, receiver.account_id):
        return Decision(True)
    if messages_dao.have_conversed(sender_id, receiver.account_id):
        return Decision(True)
    if reservations_dao.parties_share_reservation(sender_id, receiver.account_id, live_only=True):
        return Decision(True)
    return Decision(False, "messages_disabled")
