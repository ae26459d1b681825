"""Data access helpers for direct messaging between accounts."""

from __future__ import annotations

from typing import Optional

from ..errors import Forbidden, NotFound, ValidationError
from ..models.entities import Message
from . import privacy
from .accounts_dao import get_account_by_id
from .db import execute, get_db, parse_timestamp, query_all, query_one

MAX_MESSAGE_LENGTH = 2000


def _row_to_message(row) -> Message:
    return Message(
        message_id=row["message_id"],
        sender_id=row["sender_id"],
        receiver_id=row["receiver_id"],
        content=row["content"],
        is_read=bool(row["is_read"]),
        timestamp=parse_timestamp(row["timestamp"]),
    )


def send_message(sender_id: int, receiver_id: int, content: str) -> Message:
    """Deliver a message if the receiver's block list and permissions allow it."""

    content = (content or "").strip()
    if not content:
        raise ValidationError("Message content is required.")
    if len(content) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Messages are limited to {MAX_MESSAGE_LENGTH} characters.")
    if sender_id == receiver_id:
        raise ValidationError("You cannot message yourself.")

    db = get_db()
    receiver = get_account_by_id(receiver_id, connection=db)
    if receiver is None or not receiver.is_active:
        raise NotFound("Receiver not found.")
    decision = privacy.can_message(sender_id, receiver)
    if not decision.allowed:
        if decision.reason == "blocked":
            raise Forbidden("You cannot send messages to this user.")
        raise Forbidden("This user is not accepting messages.")

    cursor = execute(
        db,
        """
        INSERT INTO messages (sender_id, receiver_id, content)
        VALUES (?, ?, ?)
        """,
        (sender_id, receiver_id, content),
    )
    return get_message_by_id(cursor.lastrowid, connection=db)


def get_message_by_id(message_id: int, connection=None) -> Message | None:
    """Fetch a single message."""

    db = connection or get_db()
    row = query_one(db, "SELECT * FROM messages WHERE message_id = ?", (message_id,))
    return _row_to_message(row) if row else None


def get_conversation(account_id: int, other_id: int, mark_read: bool = True) -> list[Message]:
    """Return messages exchanged by two accounts ordered ascending."""

    db = get_db()
    rows = query_all(
        db,
        """
        SELECT * FROM messages
        WHERE (sender_id = ? AND receiver_id = ?) OR (sender_id = ? AND receiver_id = ?)
        ORDER BY timestamp ASC, message_id ASC
        """,
        (account_id, other_id, other_id, account_id),
    )
    if mark_read:
        execute(
            db,
            "UPDATE messages SET is_read = 1 WHERE receiver_id = ? AND sender_id = ? AND is_read = 0",
            (account_id, other_id),
        )
    return [_row_to_message(row) for row in rows]


def have_conversed(first_id: int, second_id: int, connection=None) -> bool:
    """True when either account has ever messaged the other."""

    db = connection or get_db()
    row = query_one(
        db,
        """
        SELECT 1 FROM messages
        WHERE (sender_id = ? AND receiver_id = ?) OR (sender_id = ? AND receiver_id = ?)
        LIMIT 1
        """,
        (first_id, second_id, second_id, first_id),
    )
    return row is not None


def unread_count(account_id: int) -> int:
    db = get_db()
    row = query_one(
        db,
        "SELECT COUNT(*) AS total FROM messages WHERE receiver_id = ? AND is_read = 0",
        (account_id,),
    )
    return int(row["total"])


def list_conversation_partners(account_id: int, limit: Optional[int] = None) -> list[dict]:
    """Partners ordered by most recent activity."""

    db = get_db()
    query = """
        SELECT
            CASE WHEN sender_id = ? THEN receiver_id ELSE sender_id END AS partner_id,
            MAX(timestamp) AS last_activity,
            COUNT(*) AS message_count
        FROM messages
        WHERE sender_id = ? OR receiver_id = ?
        GROUP BY partner_id
        ORDER BY last_activity DESC
    """
    params: list = [account_id, account_id, account_id]
    if limit:
        query += " LIMIT ?"
        params.append(limit)
    return [
        {
            "partnerId": row["partner_id"],
            "lastActivity": parse_timestamp(row["last_activity"]).isoformat(),
            "messageCount": row["message_count"],
        }
        for row in query_all(db, query, params)
    ]
