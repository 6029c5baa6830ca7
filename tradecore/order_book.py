"""Price levels and the order book of a single symbol."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from sortedcontainers import SortedDict

from tradecore.order import ORDER_INT_MAX, Order

_U64_MASK = 2**64 - 1


class LevelType(enum.Enum):
    BID = "bid"
    ASK = "ask"


class UpdateType(enum.Enum):
    NONE = 0
    ADD = 1
    UPDATE = 2
    DELETE = 3


@dataclass(eq=False)
class Level:
    """A price level: aggregated volumes and the orders queued at one price."""

    type: LevelType
    price: int
    total_volume: int = 0
    hidden_volume: int = 0
    visible_volume: int = 0
    orders: int = 0
    _queue: dict = field(default_factory=dict, init=False, repr=False)

    def is_bid(self) -> bool:
        return self.type is LevelType.BID

    def is_ask(self) -> bool:
        return self.type is LevelType.ASK

    @property
    def order_list(self) -> list[Order]:
        """Orders at this level in time priority."""
        return list(self._queue.values())

    def _push_back(self, order: Order) -> None:
        self._queue[id(order)] = order
        self.orders += 1

    def _remove(self, order: Order) -> None:
        del self._queue[id(order)]
        self.orders -= 1

    def _snapshot(self) -> "Level":
        return Level(
            self.type,
            self.price,
            self.total_volume,
            self.hidden_volume,
            self.visible_volume,
            self.orders,
        )


@dataclass(frozen=True)
class LevelUpdate:
    """A change of a price level and whether it touched the top of the book."""

    type: UpdateType
    level: Level
    top: bool


@dataclass(frozen=True)
class Symbol:
    id: int
    name: str


class _Kind(enum.Enum):
    LIMIT = "limit"
    STOP = "stop"
    TRAILING = "trailing"


def _next_lower(levels: SortedDict, price: int) -> Optional[Level]:
    index = levels.bisect_left(price) - 1
    return levels.peekitem(index)[1] if index >= 0 else None


def _next_higher(levels: SortedDict, price: int) -> Optional[Level]:
    index = levels.bisect_right(price)
    return levels.peekitem(index)[1] if index < len(levels) else None


class OrderBook:
    """Bid/ask levels plus stop and trailing stop levels of one symbol."""

    def __init__(self, symbol: Symbol) -> None:
        self.symbol = symbol
        self.bids: SortedDict = SortedDict()
        self.asks: SortedDict = SortedDict()
        self.buy_stop: SortedDict = SortedDict()
        self.sell_stop: SortedDict = SortedDict()
        self.trailing_buy_stop: SortedDict = SortedDict()
        self.trailing_sell_stop: SortedDict = SortedDict()
        self.last_bid_price = 0
        self.last_ask_price = ORDER_INT_MAX
        self.matching_bid_price = 0
        self.matching_ask_price = ORDER_INT_MAX
        self.trailing_bid_price = 0
        self.trailing_ask_price = ORDER_INT_MAX

    def __repr__(self) -> str:
        return f"OrderBook(symbol={self.symbol!r}, bids={len(self.bids)}, asks={len(self.asks)})"

    # Best levels

    @property
    def best_bid(self) -> Optional[Level]:
        return self.bids.peekitem(-1)[1] if self.bids else None

    @property
    def best_ask(self) -> Optional[Level]:
        return self.asks.peekitem(0)[1] if self.asks else None

    @property
    def best_buy_stop(self) -> Optional[Level]:
        return self.buy_stop.peekitem(0)[1] if self.buy_stop else None

    @property
    def best_sell_stop(self) -> Optional[Level]:
        return self.sell_stop.peekitem(-1)[1] if self.sell_stop else None

    @property
    def best_trailing_buy_stop(self) -> Optional[Level]:
        return self.trailing_buy_stop.peekitem(0)[1] if self.trailing_buy_stop else None

    @property
    def best_trailing_sell_stop(self) -> Optional[Level]:
        return self.trailing_sell_stop.peekitem(-1)[1] if self.trailing_sell_stop else None

    # Lookup

    def get_bid(self, price: int) -> Optional[Level]:
        return self.bids.get(price)

    def get_ask(self, price: int) -> Optional[Level]:
        return self.asks.get(price)

    def get_next_level(self, level: Level) -> Optional[Level]:
        """The next worse bid or ask level after ``level``."""
        if level.is_bid():
            return _next_lower(self.bids, level.price)
        return _next_higher(self.asks, level.price)

    def get_next_trailing_stop_level(self, level: Level) -> Optional[Level]:
        """The next trailing stop level after ``level`` on the same side."""
        if level.is_bid():
            return _next_lower(self.trailing_sell_stop, level.price)
        return _next_higher(self.trailing_buy_stop, level.price)

    # Internal level management

    def _levels_for(self, order: Order, kind: _Kind) -> tuple[SortedDict, LevelType, int]:
        if kind is _Kind.LIMIT:
            if order.is_buy():
                return self.bids, LevelType.BID, order.price
            return self.asks, LevelType.ASK, order.price
        if kind is _Kind.STOP:
            if order.is_buy():
                return self.buy_stop, LevelType.ASK, order.stop_price
            return self.sell_stop, LevelType.BID, order.stop_price
        if order.is_buy():
            return self.trailing_buy_stop, LevelType.ASK, order.stop_price
        return self.trailing_sell_stop, LevelType.BID, order.stop_price

    def _insert(self, order: Order, kind: _Kind) -> tuple[Level, bool]:
        levels, level_type, price = self._levels_for(order, kind)
        level = levels.get(price)
        created = level is None
        if created:
            level = Level(level_type, price)
            levels[price] = level
        level.total_volume += order.leaves_quantity
        level.hidden_volume += order.hidden_quantity()
        level.visible_volume += order.visible_quantity()
        level._push_back(order)
        order.level = level
        return level, created

    def _reduce(
        self, order: Order, kind: _Kind, quantity: int, hidden: int, visible: int, unlink: bool
    ) -> tuple[Level, bool]:
        level: Level = order.level
        level.total_volume -= quantity
        level.hidden_volume -= hidden
        level.visible_volume -= visible
        if unlink:
            level._remove(order)
        snapshot = level._snapshot()
        deleted = level.total_volume == 0
        if deleted:
            levels, _, _ = self._levels_for(order, kind)
            del levels[level.price]
            order.level = None
        return snapshot, deleted

    def _is_top(self, order: Order) -> bool:
        return order.level is (self.best_bid if order.is_buy() else self.best_ask)

    # Limit orders

    def add_order(self, order: Order) -> LevelUpdate:
        level, created = self._insert(order, _Kind.LIMIT)
        update = UpdateType.ADD if created else UpdateType.UPDATE
        return LevelUpdate(update, level._snapshot(), self._is_top(order))

    def reduce_order(self, order: Order, quantity: int, hidden: int, visible: int) -> LevelUpdate:
        """Remove volume of an already reduced order from its level."""
        snapshot, deleted = self._reduce(
            order, _Kind.LIMIT, quantity, hidden, visible, order.leaves_quantity == 0
        )
        update = UpdateType.DELETE if deleted else UpdateType.UPDATE
        return LevelUpdate(update, snapshot, self._is_top(order))

    def delete_order(self, order: Order) -> LevelUpdate:
        snapshot, deleted = self._reduce(
            order,
            _Kind.LIMIT,
            order.leaves_quantity,
            order.hidden_quantity(),
            order.visible_quantity(),
            True,
        )
        update = UpdateType.DELETE if deleted else UpdateType.UPDATE
        return LevelUpdate(update, snapshot, self._is_top(order))

    # Stop orders

    def add_stop_order(self, order: Order) -> None:
        self._insert(order, _Kind.STOP)

    def reduce_stop_order(self, order: Order, quantity: int, hidden: int, visible: int) -> None:
        self._reduce(order, _Kind.STOP, quantity, hidden, visible, order.leaves_quantity == 0)

    def delete_stop_order(self, order: Order) -> None:
        self._reduce(
            order,
            _Kind.STOP,
            order.leaves_quantity,
            order.hidden_quantity(),
            order.visible_quantity(),
            True,
        )

    # Trailing stop orders

    def add_trailing_stop_order(self, order: Order) -> None:
        self._insert(order, _Kind.TRAILING)

    def reduce_trailing_stop_order(
        self, order: Order, quantity: int, hidden: int, visible: int
    ) -> None:
        self._reduce(order, _Kind.TRAILING, quantity, hidden, visible, order.leaves_quantity == 0)

    def delete_trailing_stop_order(self, order: Order) -> None:
        self._reduce(
            order,
            _Kind.TRAILING,
            order.leaves_quantity,
            order.hidden_quantity(),
            order.visible_quantity(),
            True,
        )

    # Market prices

    def market_price_bid(self) -> int:
        best = self.best_bid
        return max(self.matching_bid_price, best.price if best is not None else 0)

    def market_price_ask(self) -> int:
        best = self.best_ask
        return min(self.matching_ask_price, best.price if best is not None else ORDER_INT_MAX)

    def market_trailing_stop_price_bid(self) -> int:
        best = self.best_bid
        return min(self.last_bid_price, best.price if best is not None else 0)

    def market_trailing_stop_price_ask(self) -> int:
        best = self.best_ask
        return max(self.last_ask_price, best.price if best is not None else ORDER_INT_MAX)

    def update_last_price(self, order: Order, price: int) -> None:
        if order.is_buy():
            self.last_bid_price = price
        else:
            self.last_ask_price = price

    def update_matching_price(self, order: Order, price: int) -> None:
        if order.is_buy():
            self.matching_bid_price = price
        else:
            self.matching_ask_price = price

    def reset_matching_price(self) -> None:
        self.matching_bid_price = 0
        self.matching_ask_price = ORDER_INT_MAX

    def calculate_trailing_stop_price(self, order: Order) -> int:
        """The stop price a trailing order should move to, or its current one."""
        if order.is_buy():
            market_price = self.market_trailing_stop_price_ask()
        else:
            market_price = self.market_trailing_stop_price_bid()
        distance = order.trailing_distance
        step = order.trailing_step

        # Negative values are in hundredths of a percent of the market price
        if distance < 0:
            distance = ((-distance * market_price) & _U64_MASK) // 10000
            step = ((-step * market_price) & _U64_MASK) // 10000

        old_price = order.stop_price
        if order.is_buy():
            if market_price < ORDER_INT_MAX - distance:
                new_price = market_price + distance
            else:
                new_price = ORDER_INT_MAX
            if new_price < old_price and old_price - new_price >= step:
                return new_price
        else:
            new_price = market_price - distance if market_price > distance else 0
            if new_price > old_price and new_price - old_price >= step:
                return new_price
        return old_price