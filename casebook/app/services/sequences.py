"""Human-readable sequence numbers for billings, cases and clients.

``next_number`` is the plain scan: highest numeric run in a column plus one.
``reserve_number`` hands out numbers from a counter row that is bumped with a
single UPDATE, seeded from the scan the first time a key is used.
"""

import logging
import re

from sqlalchemy.orm import Session

from casebook.app.core.settings import get_settings
from casebook.app.models.billing import Billing
from casebook.app.models.case import Case
from casebook.app.models.client import Client
from casebook.app.models.sequence_counter import SequenceCounter

logger = logging.getLogger(__name__)

BILLING_PREFIX = "BILL-"
CASE_PREFIX = "CAS-"
CLIENT_PREFIX = ""

_DIGITS = re.compile(r"\d+")


def numeric_part(value: str | None) -> int:
    """Return the first run of digits in ``value`` as an int, 0 when there is none."""
    if not value:
        return 0
    match = _DIGITS.search(value)
    if not match:
        return 0
    return int(match.group(0))


def format_number(prefix: str, value: int, width: int | None = None) -> str:
    width = width if width is not None else get_settings().sequence_width
    return f"{prefix}{str(value).zfill(width)}"


def highest_number(db: Session, column) -> int:
    values = db.query(column).filter(column.isnot(None)).all()
    return max((numeric_part(value) for (value,) in values), default=0)


def next_number(db: Session, column, prefix: str, width: int | None = None) -> str:
    """Scan ``column`` and return the number after the highest one in use."""
    return format_number(prefix, highest_number(db, column) + 1, width)


def reserve_number(
    db: Session,
    key: str,
    column,
    prefix: str,
    width: int | None = None,
    resync: bool = False,
) -> str:
    """Reserve the next number for ``key``.

    The increment runs as one UPDATE statement so concurrent writers queue on
    the counter row instead of reading the same maximum. With ``resync`` the
    counter is first raised to the highest number already stored in
    ``column``.
    """
    if resync:
        observe_number(db, key, column, highest_number(db, column))

    updated = (
        db.query(SequenceCounter)
        .filter(SequenceCounter.key == key)
        .update({SequenceCounter.current_value: SequenceCounter.current_value + 1}, synchronize_session=False)
    )
    if updated:
        value = db.query(SequenceCounter.current_value).filter(SequenceCounter.key == key).scalar()
    else:
        value = highest_number(db, column) + 1
        db.add(SequenceCounter(key=key, current_value=value))
        db.flush()
        logger.info("Seeded sequence counter %s at %s", key, value)
    return format_number(prefix, value, width)


def observe_number(db: Session, key: str, column, value: int) -> None:
    """Raise the counter for ``key`` so it never hands out ``value`` or anything below it."""
    counter = db.query(SequenceCounter).filter(SequenceCounter.key == key).first()
    if counter is None:
        db.add(SequenceCounter(key=key, current_value=max(value, highest_number(db, column))))
        db.flush()
        return
    if counter.current_value < value:
        db.query(SequenceCounter).filter(
            SequenceCounter.key == key, SequenceCounter.current_value < value
        ).update({SequenceCounter.current_value: value}, synchronize_session=False)
        db.expire(counter)


def next_billing_number(db: Session, resync: bool = False) -> str:
    return reserve_number(db, "billing", Billing.bill_number, BILLING_PREFIX, resync=resync)


def next_case_number(db: Session) -> str:
    return reserve_number(db, "case", Case.case_number, CASE_PREFIX)


def next_client_number(db: Session) -> str:
    return reserve_number(db, "client", Client.client_number, CLIENT_PREFIX)
