from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from learnhub.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Authentication fields
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Profile
    full_name = Column(String(100), nullable=True)

    # Account status
    is_active = Column(Boolean, default=True, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    last_login = Column(DateTime(timezone=True), nullable=True)

    @property
    def display_name(self) -> str:
        """Full name, or the local part of the email address"""
        if self.full_name:
            return self.full_name
        return self.email.split("@")[0] if self.email else "Learner"

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
