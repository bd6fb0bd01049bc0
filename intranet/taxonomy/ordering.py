"""Sibling ordering policy.

New siblings are appended after the current last sibling. The read of the
existing orders and the insert are not one statement, so inserts rely on a
unique ``(parent, sort_order)`` constraint and retry when it fires.
"""

from typing import Awaitable, Callable, Iterable, TypeVar

from loguru import logger

from intranet.errors import InternalError

T = TypeVar("T")

DEFAULT_ATTEMPTS = 5


class OrderTaken(Exception):
    """Raised by an insert callback when another writer took the order first."""

    def __init__(self, order: int):
        super().__init__(f"order {order} already taken")
        self.order = order


def next_order(orders: Iterable[int]) -> int:
    """Return ``max(orders) + 1``, or ``1`` for an empty sibling set."""
    return max(orders, default=0) + 1


async def append_sibling(
    read_orders: Callable[[], Awaitable[list[int]]],
    insert: Callable[[int], Awaitable[T]],
    attempts: int = DEFAULT_ATTEMPTS,
) -> T:
    """
    Insert a new sibling as the last of its set.

    Args:
        read_orders: Returns the order values currently in the sibling set
        insert: Inserts the row with the given order; raises OrderTaken on
            a unique violation
        attempts: Maximum number of read-then-insert rounds

    Returns:
        Whatever ``insert`` returns

    Raises:
        InternalError: If every attempt collided
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        order = next_order(await read_orders())
        try:
            return await insert(order)
        except OrderTaken:
            logger.debug(f"Sibling order {order} taken, retrying ({attempt}/{attempts})")

    logger.error(f"Could not allocate a sibling order after {attempts} attempts")
    raise InternalError("Failed to allocate sibling order")


__all__ = ["OrderTaken", "next_order", "append_sibling", "DEFAULT_ATTEMPTS"]
