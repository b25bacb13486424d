from core_backend.state_machine import TransitionTable
from orders.models import Order, OrderItem

OrderStatus = Order.OrderStatus
ItemStatus = OrderItem.ItemStatus

ORDER_TRANSITIONS = TransitionTable(
    "order",
    {
        OrderStatus.OPEN: {OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED, OrderStatus.VOID},
        OrderStatus.IN_PROGRESS: {OrderStatus.READY, OrderStatus.CANCELLED, OrderStatus.VOID},
        # READY falls back to IN_PROGRESS when new items are appended
        OrderStatus.READY: {
            OrderStatus.COMPLETED,
            OrderStatus.IN_PROGRESS,
            OrderStatus.CANCELLED,
            OrderStatus.VOID,
        },
        OrderStatus.COMPLETED: set(),
        OrderStatus.CANCELLED: set(),
        OrderStatus.VOID: set(),
    },
)

# Forward only. SENT_TO_KITCHEN may be skipped; CANCELLED is reachable from
# every non-terminal state.
ITEM_TRANSITIONS = TransitionTable(
    "order item",
    {
        ItemStatus.PENDING: {ItemStatus.SENT_TO_KITCHEN, ItemStatus.PREPARING, ItemStatus.CANCELLED},
        ItemStatus.SENT_TO_KITCHEN: {ItemStatus.PREPARING, ItemStatus.CANCELLED},
        ItemStatus.PREPARING: {ItemStatus.READY, ItemStatus.CANCELLED},
        ItemStatus.READY: {ItemStatus.SERVED, ItemStatus.CANCELLED},
        ItemStatus.SERVED: set(),
        ItemStatus.CANCELLED: set(),
    },
)

# Item states that let an order move IN_PROGRESS -> READY and READY -> COMPLETED
READY_ITEM_STATES = frozenset({ItemStatus.READY, ItemStatus.SERVED, ItemStatus.CANCELLED})
COMPLETABLE_ITEM_STATES = frozenset({ItemStatus.SERVED, ItemStatus.CANCELLED})
