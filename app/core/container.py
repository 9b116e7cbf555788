from dataclasses import dataclass
from typing import Optional

from app.core.config import DELIVERY_ETA_MINUTES, ORDER_NUMBER_MAX_ATTEMPTS
from app.services.inventory_ledger import InventoryLedger
from app.services.order_builder import OrderAggregateBuilder
from app.services.order_processor import OrderProcessor
from app.services.order_status import OrderStatusUpdater
from app.services.payment_recorder import PaymentRecorder
from app.services.tracking_log import StatusTrackingLog


@dataclass
class ServiceContainer:
    """Service handles built once at startup and handed to the routes."""
    ledger: InventoryLedger
    tracking: StatusTrackingLog
    processor: OrderProcessor
    status_updater: OrderStatusUpdater


def build_container(connection_name: Optional[str] = None) -> ServiceContainer:
    ledger = InventoryLedger()
    tracking = StatusTrackingLog()
    processor = OrderProcessor(
        builder=OrderAggregateBuilder(delivery_eta_minutes=DELIVERY_ETA_MINUTES),
        ledger=ledger,
        payments=PaymentRecorder(),
        tracking=tracking,
        connection_name=connection_name,
        max_order_number_attempts=ORDER_NUMBER_MAX_ATTEMPTS,
    )
    return ServiceContainer(
        ledger=ledger,
        tracking=tracking,
        processor=processor,
        status_updater=OrderStatusUpdater(tracking, connection_name=connection_name),
    )
