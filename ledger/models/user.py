"""
User model: the identity that owns accounts.

Users are created and managed outside the ledger (registration is handled
elsewhere). The ledger only reads them to verify that the caller of a use
operation really owns the account being debited.
"""

from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger.database import Base


class User(Base):
    __tablename__ = "users"

    # Integer identity, referenced by callers as user_id
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Display name
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    accounts: Mapped[list["Account"]] = relationship(
        back_populates="user",
    )
