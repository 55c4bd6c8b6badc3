# storefront/services/order_numbers.py
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.models.order import OrderSequence

MAX_ATTEMPTS = 5


def _increment(db: Session, day: str) -> int:
    for _ in range(MAX_ATTEMPTS):
        result = db.execute(
            update(OrderSequence)
            .where(OrderSequence.day == day)
            .values(value=OrderSequence.value + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            return db.execute(
                select(OrderSequence.value).where(OrderSequence.day == day)
            ).scalar_one()
        try:
            with db.begin_nested():
                db.add(OrderSequence(day=day, value=1))
            return 1
        except IntegrityError:
            # A concurrent request created today's counter; increment it instead
            continue
    raise RuntimeError(f"Could not allocate order number for {day}")


def next_order_number(db: Session, now: Optional[datetime] = None) -> str:
    """Allocate ORD{YYYYMMDD}{NNNN} from the day's counter.

    Runs inside the caller's transaction, so a rolled back order releases
    its number together with everything else.
    """
    day = (now or datetime.now()).strftime("%Y%m%d")
    return f"ORD{day}{_increment(db, day):04d}"
