"""Orders, their parameters and validation rules."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional

ORDER_INT_MAX = 2**64 - 1
"""Largest price or quantity; also the "not set" marker for visibility and slippage."""


class ErrorCode(enum.Enum):
    """Result codes of market operations."""

    OK = 0
    SYMBOL_DUPLICATE = 1
    SYMBOL_NOT_FOUND = 2
    ORDER_BOOK_DUPLICATE = 3
    ORDER_BOOK_NOT_FOUND = 4
    ORDER_DUPLICATE = 5
    ORDER_NOT_FOUND = 6
    ORDER_ID_INVALID = 7
    ORDER_TYPE_INVALID = 8
    ORDER_PARAMETER_INVALID = 9
    ORDER_QUANTITY_INVALID = 10


class MatchingError(Exception):
    """Raised when a market operation fails; ``code`` tells why."""

    def __init__(self, code: ErrorCode, message: Optional[str] = None) -> None:
        self.code = code
        super().__init__(message or code.name)


class OrderSide(enum.Enum):
    BUY = "buy"
    SELL = "sell"


class OrderType(enum.Enum):
    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"
    STOP_LIMIT = "stop-limit"
    TRAILING_STOP = "trailing-stop"
    TRAILING_STOP_LIMIT = "trailing-stop-limit"


class OrderTimeInForce(enum.Enum):
    GTC = "good-till-cancelled"
    IOC = "immediate-or-cancel"
    FOK = "fill-or-kill"
    AON = "all-or-none"


@dataclass
class Order:
    """A trading order.

    ``leaves_quantity`` defaults to ``quantity``. ``level`` is the price level
    the order currently rests on inside an order book, if any.
    """

    id: int
    symbol_id: int
    type: OrderType
    side: OrderSide
    price: int = 0
    stop_price: int = 0
    quantity: int = 0
    time_in_force: OrderTimeInForce = OrderTimeInForce.GTC
    max_visible_quantity: int = ORDER_INT_MAX
    slippage: int = ORDER_INT_MAX
    trailing_distance: int = 0
    trailing_step: int = 0
    executed_quantity: int = 0
    leaves_quantity: Optional[int] = None
    level: Any = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.leaves_quantity is None:
            self.leaves_quantity = self.quantity

    def is_buy(self) -> bool:
        return self.side is OrderSide.BUY

    def is_sell(self) -> bool:
        return self.side is OrderSide.SELL

    def is_market(self) -> bool:
        return self.type is OrderType.MARKET

    def is_limit(self) -> bool:
        return self.type is OrderType.LIMIT

    def is_stop(self) -> bool:
        return self.type is OrderType.STOP

    def is_stop_limit(self) -> bool:
        return self.type is OrderType.STOP_LIMIT

    def is_trailing_stop(self) -> bool:
        return self.type is OrderType.TRAILING_STOP

    def is_trailing_stop_limit(self) -> bool:
        return self.type is OrderType.TRAILING_STOP_LIMIT

    def is_ioc(self) -> bool:
        return self.time_in_force is OrderTimeInForce.IOC

    def is_fok(self) -> bool:
        return self.time_in_force is OrderTimeInForce.FOK

    def is_aon(self) -> bool:
        return self.time_in_force is OrderTimeInForce.AON

    def is_iceberg(self) -> bool:
        return self.max_visible_quantity < ORDER_INT_MAX

    def is_hidden(self) -> bool:
        return self.max_visible_quantity == 0

    def is_slippage(self) -> bool:
        return self.slippage < ORDER_INT_MAX

    def hidden_quantity(self) -> int:
        if self.leaves_quantity > self.max_visible_quantity:
            return self.leaves_quantity - self.max_visible_quantity
        return 0

    def visible_quantity(self) -> int:
        return min(self.leaves_quantity, self.max_visible_quantity)

    def validate(self) -> None:
        """Check the order parameters; raise MatchingError if they are inconsistent."""
        if self.id == 0:
            raise MatchingError(ErrorCode.ORDER_ID_INVALID, "Order Id must be greater than zero")

        if self.quantity < self.leaves_quantity:
            raise MatchingError(
                ErrorCode.ORDER_QUANTITY_INVALID,
                "Order quantity must be greater than or equal to order leaves quantity",
            )
        if self.leaves_quantity == 0:
            raise MatchingError(
                ErrorCode.ORDER_QUANTITY_INVALID, "Order leaves quantity must be greater than zero"
            )

        invalid = ErrorCode.ORDER_PARAMETER_INVALID

        if self.is_market():
            if not self.is_ioc() and not self.is_fok():
                raise MatchingError(
                    invalid, "Market order must be 'Immediate-Or-Cancel' or 'Fill-Or-Kill'"
                )
            if self.is_iceberg():
                raise MatchingError(invalid, "Market order cannot be 'Iceberg'")

        if self.is_limit() and self.is_slippage():
            raise MatchingError(invalid, "Limit order cannot have slippage")

        if self.is_stop() or self.is_trailing_stop():
            if self.is_aon():
                raise MatchingError(invalid, "Stop order cannot be 'All-Or-None'")
            if self.is_iceberg():
                raise MatchingError(invalid, "Stop order cannot be 'Iceberg'")

        if (self.is_stop_limit() or self.is_trailing_stop_limit()) and self.is_slippage():
            raise MatchingError(invalid, "Stop-limit order cannot have slippage")

        if self.is_trailing_stop() or self.is_trailing_stop_limit():
            distance = self.trailing_distance
            step = self.trailing_step
            if distance == 0:
                raise MatchingError(invalid, "Trailing stop order must have non zero distance")
            if distance > 0:
                if step < 0 or step >= distance:
                    raise MatchingError(invalid, "Trailing step must be less than trailing distance")
            else:
                if distance > -1 or distance < -1000:
                    raise MatchingError(invalid, "Trailing percentage distance is out of range")
                if step > 0 or step <= distance:
                    raise MatchingError(invalid, "Trailing step must be less than trailing distance")