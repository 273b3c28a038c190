"""
Payment request persistence and status transitions.

``pending`` is the only non-terminal status.  :meth:`RequestStore.decide`
moves a request to ``approved`` or ``rejected`` with one conditional UPDATE
(``WHERE status = 'pending'``) so two reviewers clicking at the same time
cannot both stamp the record.  The loser gets the recorded decision back
unchanged.
"""

from __future__ import annotations

import datetime as _dt
import logging
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import PersistenceError, RequestNotFound
from .models import DECISIONS, PaymentRequest, RequestStatus

logger = logging.getLogger(__name__)


def _utcnow() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


class RequestStore:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Callable[[], _dt.datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def create(
        self,
        *,
        store_id: int,
        requester_name: str,
        amount: int,
        category: str,
        description: str,
        vendor_id: Optional[int] = None,
        origin_channel_id: Optional[str] = None,
        origin_message_ts: Optional[str] = None,
    ) -> PaymentRequest:
        """Insert a new pending request and return it with its generated id.

        Raises :class:`PersistenceError` when the insert cannot be committed;
        callers must not notify anyone about a request that was not saved.
        """
        request = PaymentRequest(
            store_id=store_id,
            vendor_id=vendor_id,
            requester_name=requester_name,
            amount=amount,
            category=category,
            description=description,
            status=RequestStatus.PENDING.value,
            origin_channel_id=origin_channel_id,
            origin_message_ts=origin_message_ts,
        )
        try:
            with self._session_factory() as session, session.begin():
                session.add(request)
        except SQLAlchemyError as exc:
            logger.error("Payment request insert failed for store %s: %s", store_id, exc)
            raise PersistenceError("could not save payment request") from exc
        logger.info("Payment request saved: %s", request.id)
        return request

    def attach_approval_message(self, request_id: str, message_ts: str) -> bool:
        """Record the approval card ts.  Failures are logged and reported as ``False``."""
        try:
            with self._session_factory() as session, session.begin():
                result = session.execute(
                    update(PaymentRequest)
                    .where(PaymentRequest.id == request_id)
                    .values(approval_message_ts=message_ts)
                )
        except SQLAlchemyError as exc:
            logger.warning("Could not attach approval message %s to %s: %s", message_ts, request_id, exc)
            return False
        if result.rowcount == 0:
            logger.warning("Could not attach approval message %s: request %s not found", message_ts, request_id)
            return False
        return True

    def decide(self, request_id: str, outcome: str, decided_by: str) -> PaymentRequest:
        """Approve or reject a pending request and return the full record.

        Calling this for a request that is already decided is a no-op: the
        record is returned with its original decision.
        """
        status = RequestStatus(outcome)
        if status not in DECISIONS:
            raise ValueError(f"outcome must be approved or rejected, got {outcome!r}")
        try:
            with self._session_factory() as session, session.begin():
                result = session.execute(
                    update(PaymentRequest)
                    .where(
                        PaymentRequest.id == request_id,
                        PaymentRequest.status == RequestStatus.PENDING.value,
                    )
                    .values(
                        status=status.value,
                        processed_by=decided_by,
                        processed_at=self._clock(),
                    )
                    .execution_options(synchronize_session=False)
                )
                request = session.get(PaymentRequest, request_id, populate_existing=True)
        except SQLAlchemyError as exc:
            logger.error("Decision %s on %s failed: %s", status.value, request_id, exc)
            raise PersistenceError(f"could not record decision for {request_id}") from exc
        if request is None:
            raise RequestNotFound(f"payment request {request_id} not found")
        if result.rowcount == 0:
            logger.warning(
                "Request %s already %s by %s; ignoring %s by %s",
                request_id, request.status, request.processed_by, status.value, decided_by,
            )
        else:
            logger.info("Request %s %s by %s", request_id, status.value, decided_by)
        return request

    def get(self, request_id: str) -> Optional[PaymentRequest]:
        with self._session_factory() as session:
            return session.get(PaymentRequest, request_id)


__all__ = ["RequestStore"]
