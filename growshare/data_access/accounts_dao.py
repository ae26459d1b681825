"""Data access helpers for the accounts table."""

from __future__ import annotations

import logging
import re
import sqlite3
from typing import Mapping, Optional

from ..errors import ConflictError, NotFound, UpstreamError, ValidationError
from ..models.entities import Account, Role
from .db import execute, get_db, parse_timestamp, query_all, query_one, transaction

logger = logging.getLogger(__name__)

PROFILE_VISIBILITIES = {"PUBLIC", "PRIVATE"}
MESSAGE_PERMISSIONS = {"EVERYONE", "FOLLOWERS", "NONE"}
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,30}$")
DEFAULT_ROLES = Role.GROWER


def _row_to_account(row) -> Account:
    return Account(
        account_id=row["account_id"],
        subject=row["subject"],
        email=row["email"],
        username=row["username"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        roles=Role(row["roles"]),
        total_points=row["total_points"],
        level=row["level"],
        email_verified=bool(row["email_verified"]),
        phone_verified=bool(row["phone_verified"]),
        id_verified=bool(row["id_verified"]),
        profile_visibility=row["profile_visibility"],
        allow_messages=row["allow_messages"],
        created_at=parse_timestamp(row["created_at"]),
        is_active=bool(row["is_active"]),
    )


def get_account_by_id(account_id: int, connection=None) -> Account | None:
    """Fetch an account by primary key."""

    db = connection or get_db()
    row = query_one(db, "SELECT * FROM accounts WHERE account_id = ?", (account_id,))
    return _row_to_account(row) if row else None


def require_account(account_id: int) -> Account:
    account = get_account_by_id(account_id)
    if account is None:
        raise NotFound(f"Account {account_id} not found.")
    return account


def get_account_by_subject(subject: str, connection=None) -> Account | None:
    """Fetch the account mapped to an identity-provider subject."""

    db = connection or get_db()
    row = query_one(db, "SELECT * FROM accounts WHERE subject = ?", (subject,))
    return _row_to_account(row) if row else None


def get_account_by_username(username: str) -> Account | None:
    db = get_db()
    row = query_one(db, "SELECT * FROM accounts WHERE username = ?", (username,))
    return _row_to_account(row) if row else None


def _base_username(claims: Mapping[str, Optional[str]]) -> str:
    candidate = claims.get("username") or (claims.get("email") or "").split("@")[0]
    candidate = re.sub(r"[^a-z0-9_]", "", candidate.lower())
    if len(candidate) < 3:
        candidate = f"grower{candidate}"
    return candidate[:24]


def _unique_username(db, base: str) -> str:
    username = base
    counter = 1
    while query_one(db, "SELECT 1 FROM accounts WHERE username = ?", (username,)):
        username = f"{base}{counter}"
        counter += 1
    return username


def create_account(
    subject: str,
    email: str,
    username: str,
    first_name: str = "",
    last_name: str = "",
    roles: Role = DEFAULT_ROLES,
    connection=None,
) -> Account:
    """Insert a new account and return the persisted entity."""

    db = connection or get_db()
    try:
        cursor = execute(
            db,
            """
            INSERT INTO accounts (subject, email, username, first_name, last_name, roles)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (subject, email, username, first_name or "", last_name or "", roles.value),
        )
    except sqlite3.IntegrityError as exc:
        raise ConflictError("An account with that subject or username already exists.") from exc
    return get_account_by_id(cursor.lastrowid, connection=db)


def ensure_account(subject: str, claims: Optional[Mapping[str, Optional[str]]] = None) -> Account:
    """Return the account for ``subject``, provisioning it on first sight."""

    claims = claims or {}
    db = get_db()
    account = get_account_by_subject(subject, connection=db)
    if account:
        return account

    email = claims.get("email")
    if not email:
        raise UpstreamError("Identity provider did not supply an email claim for a new account.")

    username = _unique_username(db, _base_username(claims))
    try:
        account = create_account(
            subject=subject,
            email=email,
            username=username,
            first_name=claims.get("first_name") or "",
            last_name=claims.get("last_name") or "",
            connection=db,
        )
    except ConflictError:
        # Another request provisioned the same subject first.
        account = get_account_by_subject(subject, connection=db)
        if account is None:
            raise
        return account
    logger.info("Provisioned account %s for subject %s", account.account_id, subject)
    return account


def list_accounts(include_inactive: bool = True) -> list[Account]:
    """Return all accounts, optionally filtering out inactive entries."""

    db = get_db()
    query = "SELECT * FROM accounts"
    if not include_inactive:
        query += " WHERE is_active = 1"
    query += " ORDER BY account_id ASC"
    return [_row_to_account(row) for row in query_all(db, query)]


def update_username(account_id: int, username: str) -> Account:
    """Change a username; uniqueness is enforced by the storage layer."""

    username = (username or "").strip()
    if not USERNAME_PATTERN.match(username):
        raise ValidationError(
            "Username must be 3-30 characters of letters, numbers, and underscores."
        )
    db = get_db()
    try:
        cursor = execute(
            db,
            "UPDATE accounts SET username = ? WHERE account_id = ?",
            (username, account_id),
        )
    except sqlite3.IntegrityError as exc:
        raise ConflictError("Username is already taken.") from exc
    if cursor.rowcount == 0:
        raise NotFound(f"Account {account_id} not found.")
    return get_account_by_id(account_id, connection=db)


def update_privacy(
    account_id: int,
    profile_visibility: Optional[str] = None,
    allow_messages: Optional[str] = None,
) -> Account:
    """Update profile visibility and messaging permission."""

    updates: dict = {}
    if profile_visibility is not None:
        if profile_visibility not in PROFILE_VISIBILITIES:
            raise ValidationError("profileVisibility must be PUBLIC or PRIVATE.")
        updates["profile_visibility"] = profile_visibility
    if allow_messages is not None:
        if allow_messages not in MESSAGE_PERMISSIONS:
            raise ValidationError("allowMessages must be EVERYONE, FOLLOWERS, or NONE.")
        updates["allow_messages"] = allow_messages
    db = get_db()
    if updates:
        columns = ", ".join(f"{key} = ?" for key in updates.keys())
        execute(db, f"UPDATE accounts SET {columns} WHERE account_id = ?", [*updates.values(), account_id])
    account = get_account_by_id(account_id, connection=db)
    if account is None:
        raise NotFound(f"Account {account_id} not found.")
    return account


def add_roles(account_id: int, roles: Role, connection=None) -> None:
    """Grant additional roles without removing existing ones."""

    db = connection or get_db()
    execute(
        db,
        "UPDATE accounts SET roles = (roles | ?) WHERE account_id = ?",
        (roles.value, account_id),
    )


def set_roles(account_id: int, roles: Role, admin_id: int) -> Account:
    """Replace the role set for an account."""

    db = get_db()
    with transaction(db):
        cursor = execute(db, "UPDATE accounts SET roles = ? WHERE account_id = ?", (roles.value, account_id))
        if cursor.rowcount == 0:
            raise NotFound(f"Account {account_id} not found.")
        log_admin_action(db, admin_id, "accounts", f"Set roles of account {account_id}", ",".join(roles.names()))
    return get_account_by_id(account_id, connection=db)


def set_verification(
    account_id: int,
    admin_id: int,
    email: Optional[bool] = None,
    phone: Optional[bool] = None,
    government_id: Optional[bool] = None,
) -> Account:
    """Record verification outcomes for an account."""

    updates = {
        column: int(value)
        for column, value in (
            ("email_verified", email),
            ("phone_verified", phone),
            ("id_verified", government_id),
        )
        if value is not None
    }
    db = get_db()
    with transaction(db):
        if updates:
            columns = ", ".join(f"{key} = ?" for key in updates.keys())
            execute(db, f"UPDATE accounts SET {columns} WHERE account_id = ?", [*updates.values(), account_id])
        account = get_account_by_id(account_id, connection=db)
        if account is None:
            raise NotFound(f"Account {account_id} not found.")
        if updates:
            log_admin_action(db, admin_id, "accounts", f"Updated verification of account {account_id}")
    return account


def deactivate_account(account_id: int) -> None:
    """Soft delete an account."""

    db = get_db()
    execute(db, "UPDATE accounts SET is_active = 0 WHERE account_id = ?", (account_id,))


def activate_account(account_id: int) -> None:
    """Reactivate a previously deactivated account."""

    db = get_db()
    execute(db, "UPDATE accounts SET is_active = 1 WHERE account_id = ?", (account_id,))


def reset_account(account_id: int) -> None:
    """Hard delete an account; dependent rows cascade."""

    db = get_db()
    cursor = execute(db, "DELETE FROM accounts WHERE account_id = ?", (account_id,))
    if cursor.rowcount == 0:
        raise NotFound(f"Account {account_id} not found.")
    logger.info("Account %s reset", account_id)


def log_admin_action(db, admin_id: int, target_table: str, action: str, details: Optional[str] = None) -> None:
    """Insert a row into admin_logs."""

    execute(
        db,
        """
        INSERT INTO admin_logs (admin_id, action, target_table, details)
        VALUES (?, ?, ?, ?)
        """,
        (admin_id, action, target_table, details),
    )
