"""User model definition."""

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class UserRecord(Base):
    """Persisted operator account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    username: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    password: Mapped[str] = mapped_column(String(128), nullable=False)

    # Constraints
    __table_args__ = (
        CheckConstraint("length(username) > 0", name="ck_user_username_not_empty"),
    )

    def __repr__(self) -> str:
        return f"<UserRecord(username='{self.username}', role={self.role})>"
