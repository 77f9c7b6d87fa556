# pos/credits/poster.py

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.engine import Connection

from pos.config import Settings, get_settings
from pos.credits.ledger import ZERO, CreditLedger, CreditNote
from pos.credits.weeks import get_week_end, get_week_start, now_local
from pos.exceptions import InvalidAmountError

logger = logging.getLogger(__name__)


class SaleCreditPoster:
    """
    Rolls a credit sale into the customer's note for the current credit week.
    """

    def __init__(self, conn: Connection, settings: Optional[Settings] = None):
        self.conn = conn
        self.settings = settings or get_settings()
        self.ledger = CreditLedger(conn)

    def post(
        self,
        sale_id: int,
        customer_id: int,
        amount: Decimal,
        now: Optional[datetime] = None,
    ) -> CreditNote:
        if amount is None or amount <= ZERO:
            raise InvalidAmountError(amount)

        self.ledger.get_customer(customer_id, for_update=True)

        now = now or now_local(self.settings)
        week_start = get_week_start(now)
        week_end = get_week_end(week_start)

        note = self.ledger.find_or_create_open_note(
            customer_id, week_start.date(), week_end.date()
        )
        note = self.ledger.post_credit_sale(note, amount)
        self.ledger.link_sale(note, sale_id)

        logger.info(
            "Posted credit sale %s (%s) to note %s for customer %s",
            sale_id, amount, note.id, customer_id,
        )
        return note
