"""
test_seed.py — Tests for the reset-and-seed script

Called by: pytest
Depends on: app/seed.py, tests/conftest.py
"""

from unittest.mock import patch

from app.models import Brand, Category, Party, ProductModel, Quotation
from app.seed import main, reset_database, seed_database


def test_seed_creates_sample_data(db_session):
    summary = seed_database(db_session)

    assert summary["categories"] == 10
    assert summary["brands"] == 10
    assert summary["models"] == 5
    assert summary["parties"] == ["P0001", "P0002", "P0003"]
    assert summary["quotations"] == ["quote-P0001", "quote-P0002"]

    first = db_session.query(Quotation).filter_by(title="quote-P0001").one()
    assert first.status == "sent"
    assert float(first.total_amount) == 21000
    assert float(first.total_purchase) == 16500


def test_reset_clears_everything(db_session):
    seed_database(db_session)
    removed = reset_database(db_session)

    assert removed["parties"] == 3
    for model in (Quotation, Party, ProductModel, Brand, Category):
        assert db_session.query(model).count() == 0


def test_reseed_restarts_sequence(db_session):
    seed_database(db_session)
    reset_database(db_session)
    assert seed_database(db_session)["parties"][0] == "P0001"


def test_main_refuses_outside_development():
    with (
        patch("app.seed.settings") as mock_settings,
        patch("app.logging_config.setup_logging"),
        patch("app.seed.reset_database") as reset,
    ):
        mock_settings.is_development = False
        mock_settings.app_env = "production"
        assert main([]) == 2
    reset.assert_not_called()
