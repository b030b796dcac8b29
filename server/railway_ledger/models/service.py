"""Service and seat allocation model definitions."""

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base


class ServiceRecord(Base):
    """Persisted catalog entry for a scheduled service."""

    __tablename__ = "services"

    # Primary key (train number)
    id: Mapped[str] = mapped_column(String(16), primary_key=True)

    # Catalog order
    position: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # Service details
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    source: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    destination: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    # Fare stored in minor units (e.g., paise)
    base_fare_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    has_pantry: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Constraints
    __table_args__ = (
        CheckConstraint("total_seats > 0", name="ck_service_total_seats_positive"),
        CheckConstraint("base_fare_minor > 0", name="ck_service_base_fare_positive"),
        CheckConstraint("length(id) > 0", name="ck_service_id_not_empty"),
    )

    # Relationships
    allocations: Mapped[list["SeatAllocationRecord"]] = relationship(
        "SeatAllocationRecord",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="SeatAllocationRecord.id",
    )

    def __repr__(self) -> str:
        return (
            f"<ServiceRecord(id='{self.id}', name='{self.name}', "
            f"route={self.source}->{self.destination}, seats={self.total_seats})>"
        )


class SeatAllocationRecord(Base):
    """Seats available for one service on one journey date."""

    __tablename__ = "seat_allocations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Foreign key to service
    service_id: Mapped[str] = mapped_column(
        String(16),
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    journey_date: Mapped[str] = mapped_column(String(10), nullable=False)
    seats_available: Mapped[int] = mapped_column(Integer, nullable=False)

    # Constraints
    __table_args__ = (
        UniqueConstraint("service_id", "journey_date", name="uq_seat_allocation_service_date"),
    )

    # Relationships
    service: Mapped["ServiceRecord"] = relationship("ServiceRecord", back_populates="allocations")

    def __repr__(self) -> str:
        return (
            f"<SeatAllocationRecord(service_id='{self.service_id}', "
            f"journey_date='{self.journey_date}', seats_available={self.seats_available})>"
        )
