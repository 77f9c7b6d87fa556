from decimal import Decimal

import pytest

from pos.config import Settings, settings_from_env


def test_defaults():
    settings = settings_from_env({})
    assert settings.db_url == "sqlite:///db.sqlite"
    assert settings.surplus_policy == "reject"
    assert settings.low_stock_threshold == Decimal("5")


def test_env_overrides():
    settings = settings_from_env(
        {
            "POS_DB_URL": "postgresql://pos@localhost/pos",
            "POS_TIMEZONE": "UTC",
            "POS_SURPLUS_POLICY": "Unallocated",
            "POS_LOW_STOCK_THRESHOLD": "2.5",
        }
    )
    assert settings.db_url == "postgresql://pos@localhost/pos"
    assert settings.timezone == "UTC"
    assert settings.surplus_policy == "unallocated"
    assert settings.low_stock_threshold == Decimal("2.5")


def test_unknown_surplus_policy():
    with pytest.raises(ValueError):
        Settings(surplus_policy="refund")
