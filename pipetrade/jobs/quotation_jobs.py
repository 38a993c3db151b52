"""
Quotation Jobs

- Expire quotations whose validity date has passed
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import select

from pipetrade.database import get_db_session
from pipetrade.models.sales import Quotation, QuotationStatus
from pipetrade.services.state_machine import quotation_machine

logger = logging.getLogger(__name__)

EXPIRABLE_STATUSES = [QuotationStatus.SENT.value, QuotationStatus.APPROVED.value]


async def expire_quotations(today: Optional[date] = None) -> int:
    """
    Move SENT and APPROVED quotations past their valid_upto date to EXPIRED.

    Returns the number of quotations expired.
    """
    today = today or date.today()
    expired = 0

    async with get_db_session() as session:
        result = await session.execute(
            select(Quotation).where(
                Quotation.status.in_(EXPIRABLE_STATUSES),
                Quotation.valid_upto.is_not(None),
                Quotation.valid_upto < today,
            )
        )
        for quotation in result.scalars().all():
            if not quotation_machine.can_transition(quotation.status, QuotationStatus.EXPIRED.value):
                continue
            logger.info(
                "%s: %s -> EXPIRED (valid upto %s)",
                quotation.quotation_no, quotation.status, quotation.valid_upto
            )
            quotation.status = QuotationStatus.EXPIRED.value
            expired += 1

    if expired:
        logger.info("Expired %d quotation(s)", expired)
    return expired
