"""
ChocoShop - Shared Helpers
===========================
Small utility functions shared by the service layers.
"""

import logging
import secrets
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy.exc import IntegrityError

from config.settings import REFERENCE_MAX_ATTEMPTS
from common.exceptions import ConflictError

logger = logging.getLogger("chocoshop.helpers")

CENT = Decimal("0.01")


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def safe_int(value: Optional[str]) -> Optional[int]:
    """Safely convert a string to int. Returns None on failure."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return None


def to_money(value) -> Decimal:
    """Convert a number to a Decimal rounded to cents."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


# ==========================================
# Reference Generator (order numbers, transaction ids)
# ==========================================

def generate_reference(prefix: str) -> str:
    """
    Human-readable reference: PREFIX-<yyyymmddHHMMSS>-<8 hex>.
    Collision-improbable, not collision-free; callers insert under a unique
    constraint and retry.
    """
    stamp = now_utc().strftime("%Y%m%d%H%M%S")
    return f"{prefix}-{stamp}-{secrets.token_hex(4).upper()}"


def reference_exists(db, column, ref: str) -> bool:
    return db.query(column).filter(column == ref).first() is not None


def add_with_unique_reference(db, build, column, prefix: str, max_attempts: int = REFERENCE_MAX_ATTEMPTS):
    """
    Insert the row returned by build(reference) under a fresh reference.

    `column` is the unique column holding the reference. Each attempt checks
    the DB for the candidate, then inserts inside a SAVEPOINT so a collision
    with a concurrent insert only rolls back that attempt. IntegrityErrors
    caused by other constraints propagate unchanged.
    """
    for attempt in range(1, max_attempts + 1):
        ref = generate_reference(prefix)
        if reference_exists(db, column, ref):
            logger.warning(f"Reference collision on {ref} (attempt {attempt}/{max_attempts})")
            continue

        row = build(ref)
        try:
            with db.begin_nested():
                db.add(row)
        except IntegrityError:
            if not reference_exists(db, column, ref):
                raise
            logger.warning(f"Reference collision on {ref} at insert (attempt {attempt}/{max_attempts})")
            continue
        return row

    raise ConflictError(f"Could not allocate a unique {prefix} reference, please retry")
