"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path
import sys
from typing import Generator

import pytest
from flask import Flask

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from growshare.app import create_app
from growshare.config import TestingConfig
from growshare.data_access import accounts_dao, resources_dao, seed
from growshare.data_access.db import get_db, init_db


class _TestConfig(TestingConfig):
    DATABASE_URL: str = ""
    LOG_LEVEL: str = "DEBUG"


def _auth_headers(subject: str, email: str | None = None, **claims: str) -> dict:
    """Headers the identity gateway would forward for ``subject``."""

    headers = {"X-Auth-Subject": subject}
    if email:
        headers["X-Auth-Email"] = email
    for claim, header in (("username", "X-Auth-Username"), ("first_name", "X-Auth-First-Name")):
        if claim in claims:
            headers[header] = claims[claim]
    return headers


@pytest.fixture()
def app(tmp_path: Path) -> Generator[Flask, None, None]:
    """Configure a Flask application for testing with a temp SQLite database."""

    db_path = tmp_path / "test.db"
    _TestConfig.DATABASE_URL = f"sqlite:///{db_path}"
    application = create_app(_TestConfig)
    with application.app_context():
        init_db(application)
        seed.seed()
    yield application


@pytest.fixture()
def client(app: Flask):
    """Flask test client."""

    return app.test_client()


@pytest.fixture()
def runner(app: Flask):
    """Flask CLI runner."""

    return app.test_cli_runner()


@pytest.fixture()
def db(app: Flask):
    """Provide a database connection for direct queries."""

    with app.app_context():
        yield get_db()


def _account(app: Flask, subject: str):
    with app.app_context():
        account = accounts_dao.get_account_by_subject(subject)
        if account is None:
            raise AssertionError(f"Expected seed account {subject}.")
        return account


@pytest.fixture()
def admin(app: Flask):
    return _account(app, "seed|admin")


@pytest.fixture()
def landowner(app: Flask):
    return _account(app, "seed|lena")


@pytest.fixture()
def tool_owner(app: Flask):
    return _account(app, "seed|omar")


@pytest.fixture()
def grower(app: Flask):
    return _account(app, "seed|gus")


@pytest.fixture()
def second_grower(app: Flask):
    return _account(app, "seed|hana")


@pytest.fixture()
def river_plot(app: Flask, landowner):
    """Riverside plot: request-to-book, one month minimum."""

    with app.app_context():
        for resource in resources_dao.list_resources_for_owner(landowner.account_id):
            if resource.title == "Riverside Garden Plot":
                return resource
        raise AssertionError("Expected riverside plot in seed data.")


@pytest.fixture()
def orchard_plot(app: Flask, landowner):
    """Hilltop orchard: instant book, three month minimum, no reservations."""

    with app.app_context():
        for resource in resources_dao.list_resources_for_owner(landowner.account_id):
            if resource.title == "Hilltop Orchard Rows":
                return resource
        raise AssertionError("Expected orchard plot in seed data.")


@pytest.fixture()
def tiller(app: Flask, tool_owner):
    with app.app_context():
        for resource in resources_dao.list_resources_for_owner(tool_owner.account_id):
            if resource.kind == "tool":
                return resource
        raise AssertionError("Expected tool in seed data.")


@pytest.fixture()
def draft_plot(app: Flask, tool_owner):
    with app.app_context():
        for resource in resources_dao.list_resources_for_owner(tool_owner.account_id):
            if resource.status == "draft":
                return resource
        raise AssertionError("Expected draft listing in seed data.")


@pytest.fixture()
def auth_headers():
    """Build identity gateway headers: ``auth_headers("seed|gus")``."""

    return _auth_headers
