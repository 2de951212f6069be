# learnhub/services/purchase_ledger.py
import logging
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from learnhub.core.exceptions import ConflictError, PersistenceError
from learnhub.models.purchase import PURCHASE_STATUS_COMPLETED, Purchase

logger = logging.getLogger(__name__)

FAIL_OPEN = "fail_open"
FAIL_CLOSED = "fail_closed"


class PurchaseLedger:
    """
    Append-only record of confirmed enrollments.

    There is no update or delete operation: once a purchase is
    recorded, access to the course is permanent.
    """

    def __init__(self, db: Session, read_failure_policy: str = FAIL_CLOSED):
        self.db = db
        self.read_failure_policy = read_failure_policy

    def record_purchase(
        self,
        user_id: int,
        course_id: str,
        session_id: Optional[str] = None,
        amount_paid: Optional[int] = None,
    ) -> Purchase:
        """
        Append a purchase row.

        Recording the same (user, course) pair or the same payment session
        twice returns the existing row instead of creating a duplicate.
        Raises PersistenceError when the write does not complete.
        """
        existing = self._find_existing(user_id, course_id, session_id)
        if existing is not None:
            return existing

        purchase = Purchase(
            user_id=user_id,
            course_id=course_id,
            session_id=session_id,
            amount_paid=amount_paid,
            status=PURCHASE_STATUS_COMPLETED,
        )

        try:
            self.db.add(purchase)
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent callback for the same purchase
            self.db.rollback()
            existing = self._find_existing(user_id, course_id, session_id)
            if existing is not None:
                return existing
            logger.error(
                f"Purchase write rejected for user={user_id} course={course_id}"
            )
            raise PersistenceError(
                "Failed to complete enrollment. Please contact support.",
                reference_id=session_id,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Error recording purchase user={user_id} course={course_id}: {e}"
            )
            raise PersistenceError(
                "Failed to complete enrollment. Please contact support.",
                reference_id=session_id,
            )

        self.db.refresh(purchase)
        logger.info(
            f"Purchase recorded successfully: user={user_id} course={course_id}"
        )
        return purchase

    def has_purchased(self, user_id: int, course_id: str) -> bool:
        """
        True iff a purchase row exists for the pair.

        A failed read is logged and answered according to the configured
        policy: ``fail_closed`` denies, ``fail_open`` allows.
        """
        try:
            row = (
                self.db.query(Purchase.id)
                .filter(
                    and_(
                        Purchase.user_id == user_id,
                        Purchase.course_id == course_id,
                    )
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Error checking purchase user={user_id} course={course_id}: {e}"
            )
            return self.read_failure_policy == FAIL_OPEN

        return row is not None

    def list_purchases(self, user_id: int) -> List[Purchase]:
        """All purchases of a user, newest first."""
        return (
            self.db.query(Purchase)
            .filter(Purchase.user_id == user_id)
            .order_by(Purchase.purchase_date.desc(), Purchase.id.desc())
            .all()
        )

    def _find_existing(
        self, user_id: int, course_id: str, session_id: Optional[str]
    ) -> Optional[Purchase]:
        same_pair = and_(Purchase.user_id == user_id, Purchase.course_id == course_id)
        criteria = or_(same_pair, Purchase.session_id == session_id) if session_id else same_pair

        try:
            existing = self.db.query(Purchase).filter(criteria).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error reading purchase ledger: {e}")
            raise PersistenceError(
                "Failed to complete enrollment. Please contact support.",
                reference_id=session_id,
            )

        if existing is None:
            return None

        if existing.user_id != user_id or existing.course_id != course_id:
            logger.warning(
                f"Payment session {session_id} already used by purchase {existing.id}"
            )
            raise ConflictError(
                "This payment session has already been used.", reference_id=session_id
            )

        logger.info(
            f"Purchase already recorded: user={user_id} course={course_id} (id={existing.id})"
        )
        return existing
