# learnhub/services/access.py
import logging

from fastapi import HTTPException, status

from learnhub.services.purchase_ledger import PurchaseLedger

logger = logging.getLogger(__name__)


class AccessAuthorization:
    """
    Who may watch what.

    Access is exactly "has a purchase row": there is no expiry, seat limit
    or revocation. Decisions are never cached; every content request reads
    the ledger.
    """

    def __init__(self, ledger: PurchaseLedger):
        self.ledger = ledger

    def can_access(self, user_id: int, course_id: str) -> bool:
        return self.ledger.has_purchased(user_id, course_id)

    def require_access(self, user_id: int, course_id: str) -> None:
        if not self.can_access(user_id, course_id):
            logger.info(f"Access denied: user={user_id} course={course_id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You need to purchase this course to access its content",
            )
