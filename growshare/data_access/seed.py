"""Deterministic seed data for GrowShare."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from ..models.entities import Role
from . import accounts_dao, blackouts_dao, reservations_dao, resources_dao

SEED_ACCOUNTS = [
    # subject, email, username, first, last, roles
    ("seed|admin", "ada.admin@growshare.test", "ada_admin", "Ada", "Admin", Role.ADMIN | Role.GROWER),
    ("seed|lena", "lena.land@growshare.test", "lena_land", "Lena", "Landry", Role.LANDOWNER),
    ("seed|omar", "omar.owner@growshare.test", "omar_owner", "Omar", "Okafor", Role.LANDOWNER | Role.GROWER),
    ("seed|gus", "gus.grower@growshare.test", "gus_grows", "Gus", "Green", Role.GROWER),
    ("seed|hana", "hana.harvest@growshare.test", "hana_harvest", "Hana", "Hart", Role.GROWER),
]


def seed(today: Optional[date] = None) -> None:
    """Populate the database with representative demo records."""

    today = today or date.today()

    for subject, email, username, first_name, last_name, roles in SEED_ACCOUNTS:
        if accounts_dao.get_account_by_subject(subject) is None:
            accounts_dao.create_account(
                subject=subject,
                email=email,
                username=username,
                first_name=first_name,
                last_name=last_name,
                roles=roles,
            )

    def _account_id(subject: str) -> int:
        account = accounts_dao.get_account_by_subject(subject)
        if account is None:
            raise ValueError(f"Expected seed account {subject} to exist.")
        return account.account_id

    lena = _account_id("seed|lena")
    omar = _account_id("seed|omar")
    gus = _account_id("seed|gus")
    hana = _account_id("seed|hana")

    if resources_dao.list_resources_for_owner(lena):
        return

    river_plot = resources_dao.create_resource(
        owner_id=lena,
        kind="plot",
        title="Riverside Garden Plot",
        description="Quarter acre of loam soil with well water and a tool shed.",
        location="Asheville, NC",
        rate=120.0,
        minimum_duration=1,
        instant_book=False,
    )
    resources_dao.create_resource(
        owner_id=lena,
        kind="plot",
        title="Hilltop Orchard Rows",
        description="Established fruit tree rows, sunny south slope.",
        location="Asheville, NC",
        rate=200.0,
        minimum_duration=3,
        instant_book=True,
    )
    tiller = resources_dao.create_resource(
        owner_id=omar,
        kind="tool",
        title="Rear-Tine Tiller",
        description="Gas tiller for breaking new ground.",
        location="Black Mountain, NC",
        rate=35.0,
        minimum_duration=1,
        instant_book=True,
    )
    resources_dao.create_resource(
        owner_id=omar,
        kind="plot",
        title="Draft Greenhouse Bay",
        description="Heated bay, not yet open for bookings.",
        location="Black Mountain, NC",
        rate=90.0,
        status="draft",
    )

    reservations_dao.create_reservation(
        river_plot.resource_id,
        gus,
        today + timedelta(days=30),
        today + timedelta(days=90),
        message="Planning a three-season vegetable rotation.",
    )
    reservations_dao.create_reservation(
        tiller.resource_id,
        hana,
        today + timedelta(days=5),
        today + timedelta(days=7),
    )
    blackouts_dao.create_blackout(
        river_plot.resource_id,
        today + timedelta(days=120),
        today + timedelta(days=135),
        reason="Cover crop and soil rest",
    )
