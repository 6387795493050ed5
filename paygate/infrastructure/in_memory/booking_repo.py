"""In-memory booking repository for development and tests."""

import copy

from paygate.application.interfaces.booking_repo import BookingRepo
from paygate.domain.entities.booking import Booking, BookingPaymentStatus, BookingStatus


class InMemoryBookingRepo(BookingRepo):
    def __init__(self) -> None:
        self._by_id: dict[str, Booking] = {}

    def add(self, booking: Booking) -> Booking:
        """Seed a booking; the booking subsystem owns creation."""
        self._by_id[booking.id] = copy.deepcopy(booking)
        return booking

    async def get_by_reference(self, booking_ref: str) -> Booking | None:
        booking = self._by_id.get(booking_ref)
        if booking is None:
            booking = next(
                (b for b in self._by_id.values() if b.booking_number == booking_ref),
                None,
            )
        return copy.deepcopy(booking) if booking else None

    async def get_by_id(self, booking_id: str, for_update: bool = False) -> Booking | None:
        booking = self._by_id.get(booking_id)
        return copy.deepcopy(booking) if booking else None

    async def update_payment_state(
        self,
        booking_id: str,
        payment_status: BookingPaymentStatus,
        status: BookingStatus | None = None,
    ) -> None:
        booking = self._by_id.get(booking_id)
        if booking is None:
            return
        booking.payment_status = payment_status
        if status is not None:
            booking.status = status

    def clear(self) -> None:
        self._by_id.clear()
