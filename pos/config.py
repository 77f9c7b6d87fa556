# pos/config.py

import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache

SURPLUS_REJECT = "reject"
SURPLUS_UNALLOCATED = "unallocated"
SURPLUS_POLICIES = (SURPLUS_REJECT, SURPLUS_UNALLOCATED)

DEFAULT_DB_URL = "sqlite:///db.sqlite"  # file in project root
DEFAULT_TIMEZONE = "America/Mexico_City"
DEFAULT_OPERATOR_ID = "00000000-0000-0000-0000-000000000000"


@dataclass(frozen=True)
class Settings:
    db_url: str = DEFAULT_DB_URL
    timezone: str = DEFAULT_TIMEZONE
    operator_id: str = DEFAULT_OPERATOR_ID
    surplus_policy: str = SURPLUS_REJECT
    low_stock_threshold: Decimal = Decimal("5")

    def __post_init__(self):
        if self.surplus_policy not in SURPLUS_POLICIES:
            raise ValueError(
                f"surplus_policy must be one of {', '.join(SURPLUS_POLICIES)}, "
                f"got {self.surplus_policy!r}"
            )


def settings_from_env(environ=None) -> Settings:
    """
    Build settings from POS_* environment variables, falling back to defaults.
    """
    env = os.environ if environ is None else environ
    return Settings(
        db_url=env.get("POS_DB_URL", DEFAULT_DB_URL),
        timezone=env.get("POS_TIMEZONE", DEFAULT_TIMEZONE),
        operator_id=env.get("POS_OPERATOR_ID", DEFAULT_OPERATOR_ID),
        surplus_policy=env.get("POS_SURPLUS_POLICY", SURPLUS_REJECT).strip().lower(),
        low_stock_threshold=Decimal(env.get("POS_LOW_STOCK_THRESHOLD", "5")),
    )


@lru_cache
def get_settings() -> Settings:
    return settings_from_env()
