# learnhub/models/purchase.py
from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from learnhub.core.database import Base

PURCHASE_STATUS_COMPLETED = "completed"


class Purchase(Base):
    """
    One confirmed enrollment.

    Rows are appended by the purchase ledger and never updated or deleted.
    A pair (user, course) can only be enrolled once, and a payment session
    can only produce one row.
    """

    __tablename__ = "purchases"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_purchases_user_course"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # No foreign keys: identities and catalog keys are opaque to the ledger
    user_id = Column(Integer, nullable=False, index=True)
    course_id = Column(String(64), nullable=False, index=True)

    # Idempotency key: the hosted checkout session id
    session_id = Column(String(255), unique=True, nullable=True)
    amount_paid = Column(Integer, nullable=True)  # minor units

    status = Column(String(20), nullable=False, default=PURCHASE_STATUS_COMPLETED)
    purchase_date = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self):
        return f"<Purchase(id={self.id}, user_id={self.user_id}, course_id={self.course_id})>"
