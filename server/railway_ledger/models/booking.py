"""Booking and rider model definitions."""

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base


class BookingRecord(Base):
    """Persisted booking; rows keep ledger insertion order through the id."""

    __tablename__ = "bookings"

    # Primary key, preserves insertion order
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Booking reference (PNR)
    reference: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)

    # Not a foreign key: bookings outlive removed services
    service_id: Mapped[str] = mapped_column(String(16), nullable=False, index=True)

    journey_date: Mapped[str] = mapped_column(String(10), nullable=False)
    fare_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # Constraints
    __table_args__ = (
        CheckConstraint("length(reference) > 0", name="ck_booking_reference_not_empty"),
        CheckConstraint("fare_minor >= 0", name="ck_booking_fare_non_negative"),
    )

    # Relationships
    riders: Mapped[list["RiderRecord"]] = relationship(
        "RiderRecord",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="RiderRecord.position",
    )

    def __repr__(self) -> str:
        return (
            f"<BookingRecord(reference='{self.reference}', service_id='{self.service_id}', "
            f"journey_date='{self.journey_date}', status={self.status})>"
        )


class RiderRecord(Base):
    """A rider on a persisted booking."""

    __tablename__ = "riders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Foreign key to booking
    booking_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    gender: Mapped[str] = mapped_column(String(1), nullable=False)

    # Relationships
    booking: Mapped["BookingRecord"] = relationship("BookingRecord", back_populates="riders")

    def __repr__(self) -> str:
        return f"<RiderRecord(name='{self.name}', age={self.age}, gender='{self.gender}')>"
