"""Recent-window record of orders that reached a final outcome."""

import threading
from collections import OrderedDict


class ProcessedOrderLedger:
    """Bounded set of processed order ids, oldest evicted first.

    Kafka delivers at least once, so the same order event can arrive again
    after a rebalance or a restart before the offset was committed. The
    consumer checks the ledger before applying an event and records the order
    once its outcome is final. A capacity of ``0`` disables tracking.
    """

    def __init__(self, capacity: int = 10000):
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        self.capacity = capacity
        self._orders: OrderedDict[int, None] = OrderedDict()
        self._lock = threading.Lock()

    def seen(self, order_id: int) -> bool:
        with self._lock:
            return order_id in self._orders

    def record(self, order_id: int) -> None:
        if self.capacity == 0:
            return
        with self._lock:
            self._orders[order_id] = None
            self._orders.move_to_end(order_id)
            while len(self._orders) > self.capacity:
                self._orders.popitem(last=False)

    def __len__(self) -> int:
        return len(self._orders)
