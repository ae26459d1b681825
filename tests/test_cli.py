"""CLI command tests."""

from __future__ import annotations

from datetime import date, timedelta

from growshare.data_access import accounts_dao, resources_dao


def test_advance_reservations_command(runner):
    today = date.today() + timedelta(days=5)
    result = runner.invoke(args=["advance-reservations", "--today", today.isoformat()])
    assert result.exit_code == 0
    assert "Expired 0, activated 1, completed 0." in result.output


def test_seed_is_idempotent(app, runner, landowner):
    result = runner.invoke(args=["seed"])
    assert result.exit_code == 0
    with app.app_context():
        assert len(accounts_dao.list_accounts()) == 5
        assert len(resources_dao.list_resources_for_owner(landowner.account_id)) == 2


def test_init_db_resets_schema(app, runner):
    result = runner.invoke(args=["init-db"])
    assert result.exit_code == 0
    with app.app_context():
        assert accounts_dao.list_accounts() == []
