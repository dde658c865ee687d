"""ORM model for bookings; only what the account queries join through."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import relationship

from staybook.models.base import Base


class Booking(Base):
    """Reservation made by a user. Apartments live outside this package, so apartment_id has no FK."""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    apartment_id = Column(Integer, nullable=True)
    reservation_number = Column(String(20), nullable=False, unique=True, index=True)
    check_in_date = Column(Date, nullable=True)
    check_out_date = Column(Date, nullable=True)
    guest_count = Column(Integer, nullable=False, default=1)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    booking_status = Column(String(20), nullable=False, default="Pending")
    created_date = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    user = relationship("User", back_populates="bookings")
    reviews = relationship("Review", back_populates="booking")
