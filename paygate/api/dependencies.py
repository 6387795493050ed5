from functools import lru_cache
from typing import Mapping

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from paygate.api.deps import get_sessionmaker
from paygate.application.interfaces.booking_repo import BookingRepo
from paygate.application.interfaces.clock import Clock, SystemClock
from paygate.application.interfaces.payment_gateway import PaymentGateway
from paygate.application.interfaces.payment_repo import PaymentRepo
from paygate.application.interfaces.side_effect_dispatcher import SideEffectDispatcher
from paygate.application.interfaces.transaction_manager import TransactionManager
from paygate.application.interfaces.webhook_event_repo import WebhookEventRepo
from paygate.application.use_cases.create_payment import CreatePaymentUseCase
from paygate.application.use_cases.payment_facade import PaymentFacade
from paygate.application.use_cases.payment_state_machine import PaymentStateMachine
from paygate.application.use_cases.reconcile_payment import ReconcilePaymentUseCase
from paygate.application.use_cases.refund_payment import RefundPaymentUseCase
from paygate.application.use_cases.settle_payment import SettlePaymentUseCase
from paygate.config import Settings, get_settings
from paygate.infrastructure.db.repositories.booking_repo_sql import BookingRepoSQL
from paygate.infrastructure.db.repositories.payment_repo_sql import PaymentRepoSQL
from paygate.infrastructure.db.repositories.webhook_event_repo_sql import WebhookEventRepoSQL
from paygate.infrastructure.db.retry import DeadlockRetryingSettlePayment
from paygate.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from paygate.infrastructure.gateways.factory import PaymentGatewayFactory, make_breakers
from paygate.infrastructure.in_memory import (
    InMemoryBookingRepo,
    InMemoryPaymentRepo,
    InMemoryWebhookEventRepo,
    LockingTransactionManager,
)
from paygate.infrastructure.notifications.logging_dispatcher import LoggingDispatcher


def build_payment_facade(
    gateways: Mapping[str, PaymentGateway],
    booking_repo: BookingRepo,
    payment_repo: PaymentRepo,
    webhook_event_repo: WebhookEventRepo,
    tx: TransactionManager,
    dispatcher: SideEffectDispatcher,
    clock: Clock,
    settle_class: type[SettlePaymentUseCase] = SettlePaymentUseCase,
) -> PaymentFacade:
    state_machine = PaymentStateMachine(payment_repo, booking_repo, clock)
    settle = settle_class(
        payment_repo=payment_repo,
        booking_repo=booking_repo,
        webhook_event_repo=webhook_event_repo,
        state_machine=state_machine,
        dispatcher=dispatcher,
        tx=tx,
        clock=clock,
    )
    return PaymentFacade(
        gateways=gateways,
        payment_repo=payment_repo,
        create_payment=CreatePaymentUseCase(booking_repo, payment_repo, tx, clock),
        settle_payment=settle,
        reconcile_payment=ReconcilePaymentUseCase(payment_repo, settle),
        refund_payment=RefundPaymentUseCase(payment_repo, state_machine, tx),
    )


async def get_session(settings: Settings = Depends(get_settings)) -> AsyncSession | None:
    if settings.use_in_memory:
        yield None
        return
    async with get_sessionmaker()() as session:
        yield session


@lru_cache(maxsize=1)
def _in_memory_bundle():
    settings = get_settings()
    clock = SystemClock()
    booking_repo = InMemoryBookingRepo()
    payment_repo = InMemoryPaymentRepo()
    webhook_event_repo = InMemoryWebhookEventRepo()
    factory = PaymentGatewayFactory(
        config=settings.gateway_config(),
        clock=clock,
        payment_repo=payment_repo,
        timeout_seconds=settings.gateway_timeout_seconds,
    )
    facade = build_payment_facade(
        gateways=factory.all_gateways(),
        booking_repo=booking_repo,
        payment_repo=payment_repo,
        webhook_event_repo=webhook_event_repo,
        tx=LockingTransactionManager(),
        dispatcher=LoggingDispatcher(),
        clock=clock,
    )
    return {
        "booking_repo": booking_repo,
        "payment_repo": payment_repo,
        "webhook_event_repo": webhook_event_repo,
        "facade": facade,
    }


@lru_cache(maxsize=1)
def _shared_breakers():
    return make_breakers()


def get_payment_facade(
    settings: Settings = Depends(get_settings),
    session: AsyncSession | None = Depends(get_session),
) -> PaymentFacade:
    if settings.use_in_memory:
        return _in_memory_bundle()["facade"]

    if not session:
        raise RuntimeError("DB session not available")

    clock = SystemClock()
    payment_repo = PaymentRepoSQL(session)
    factory = PaymentGatewayFactory(
        config=settings.gateway_config(),
        clock=clock,
        payment_repo=payment_repo,
        timeout_seconds=settings.gateway_timeout_seconds,
        breakers=_shared_breakers(),
    )
    return build_payment_facade(
        gateways=factory.all_gateways(),
        booking_repo=BookingRepoSQL(session),
        payment_repo=payment_repo,
        webhook_event_repo=WebhookEventRepoSQL(session),
        tx=SQLAlchemyTransactionManager(session),
        dispatcher=LoggingDispatcher(),
        clock=clock,
        settle_class=DeadlockRetryingSettlePayment,
    )
