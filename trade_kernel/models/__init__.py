"""ORM models for the trade kernel."""

from trade_kernel.models.booking import Booking, BookingOrderLink
from trade_kernel.models.communication import Communication
from trade_kernel.models.milestone import Milestone
from trade_kernel.models.order import Order, OrderInvoice
from trade_kernel.models.packing_list import PackingListReference

__all__ = [
    "Booking",
    "BookingOrderLink",
    "Communication",
    "Milestone",
    "Order",
    "OrderInvoice",
    "PackingListReference",
]
