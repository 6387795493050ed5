from datetime import datetime, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from paygate.application.interfaces.booking_repo import BookingRepo
from paygate.domain.entities.booking import Booking, BookingPaymentStatus, BookingStatus
from paygate.infrastructure.db.tables import bookings


class BookingRepoSQL(BookingRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_reference(self, booking_ref: str) -> Booking | None:
        stmt = (
            select(bookings)
            .where(or_(bookings.c.id == booking_ref, bookings.c.booking_number == booking_ref))
            .limit(1)
        )
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        return self._map_booking(row) if row else None

    async def get_by_id(self, booking_id: str, for_update: bool = False) -> Booking | None:
        stmt = select(bookings).where(bookings.c.id == booking_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        return self._map_booking(row) if row else None

    async def update_payment_state(
        self,
        booking_id: str,
        payment_status: BookingPaymentStatus,
        status: BookingStatus | None = None,
    ) -> None:
        values = {
            "payment_status": payment_status.value,
            "updated_at": datetime.now(timezone.utc),
        }
        if status is not None:
            values["status"] = status.value
        stmt = update(bookings).where(bookings.c.id == booking_id).values(**values)
        await self._session.execute(stmt)

    def _map_booking(self, row) -> Booking:
        return Booking(
            id=row["id"],
            booking_number=row["booking_number"],
            total_amount=row["total_amount"],
            status=BookingStatus(row["status"]),
            payment_status=BookingPaymentStatus(row["payment_status"]),
            customer_name=row.get("customer_name"),
            customer_email=row.get("customer_email"),
            service_name=row.get("service_name"),
        )
