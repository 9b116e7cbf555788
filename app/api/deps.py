from fastapi import Request

from app.core.container import ServiceContainer
from app.services.inventory_ledger import InventoryLedger
from app.services.order_processor import OrderProcessor
from app.services.order_status import OrderStatusUpdater
from app.services.tracking_log import StatusTrackingLog


def get_services(request: Request) -> ServiceContainer:
    """Service handles created by the application lifespan."""
    return request.app.state.services


def get_order_processor(request: Request) -> OrderProcessor:
    return get_services(request).processor


def get_status_updater(request: Request) -> OrderStatusUpdater:
    return get_services(request).status_updater


def get_inventory_ledger(request: Request) -> InventoryLedger:
    return get_services(request).ledger


def get_tracking_log(request: Request) -> StatusTrackingLog:
    return get_services(request).tracking
