"""
Best-effort vendor lookup.

A vendor name typed by a requester is matched case-insensitively as a
substring of the known vendor names.  An exact (case-insensitive) name wins
over a partial one; otherwise the lowest vendor id wins.  Any database error
is logged and reported as "no match" so a lookup outage never blocks a
payment request.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import Vendor

logger = logging.getLogger(__name__)


class VendorResolver:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def resolve(self, vendor_name: Optional[str]) -> Optional[int]:
        if not vendor_name or not vendor_name.strip():
            return None
        needle = vendor_name.strip()
        try:
            return self._lookup(needle)
        except SQLAlchemyError as exc:
            logger.warning("Vendor lookup failed for %r, leaving request unassigned: %s", needle, exc)
            return None

    def _lookup(self, needle: str) -> Optional[int]:
        exact_first = case((func.lower(Vendor.name) == needle.lower(), 0), else_=1)
        stmt = (
            select(Vendor.id)
            .where(Vendor.name.icontains(needle, autoescape=True))
            .order_by(exact_first, Vendor.id)
            .limit(1)
        )
        with self._session_factory() as session:
            vendor_id = session.execute(stmt).scalar_one_or_none()
        if vendor_id is None:
            logger.info("No vendor matches %r", needle)
        return vendor_id


__all__ = ["VendorResolver"]
