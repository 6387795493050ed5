from paygate.domain.entities.booking import Booking, BookingPaymentStatus, BookingStatus


class BookingRepo:
    async def get_by_reference(self, booking_ref: str) -> Booking | None:
        """Look a booking up by id or by booking number."""
        raise NotImplementedError

    async def get_by_id(self, booking_id: str, for_update: bool = False) -> Booking | None:
        raise NotImplementedError

    async def update_payment_state(
        self,
        booking_id: str,
        payment_status: BookingPaymentStatus,
        status: BookingStatus | None = None,
    ) -> None:
        raise NotImplementedError
