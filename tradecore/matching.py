"""Matching of crossed orders, stop activation and trailing stop maintenance."""

from __future__ import annotations

from collections import Counter
from typing import Optional

from tradecore.order import (
    ORDER_INT_MAX,
    ErrorCode,
    MatchingError,
    Order,
    OrderTimeInForce,
    OrderType,
)
from tradecore.order_book import Level, LevelType, LevelUpdate, OrderBook, Symbol, UpdateType

_U64_MASK = 2**64 - 1

_STOP_TYPES = (OrderType.STOP, OrderType.STOP_LIMIT)
_TRAILING_TYPES = (OrderType.TRAILING_STOP, OrderType.TRAILING_STOP_LIMIT)


class MarketHandler:
    """Receives notifications about market events.

    The default hooks only count how often each event was seen, in
    ``event_counts``; subclasses override the hooks they care about.
    """

    @property
    def event_counts(self) -> Counter:
        return self.__dict__.setdefault("_event_counts", Counter())

    def _record(self, event: str) -> None:
        self.event_counts[event] += 1

    def on_add_symbol(self, symbol: Symbol) -> None:
        self._record("add_symbol")

    def on_delete_symbol(self, symbol: Symbol) -> None:
        self._record("delete_symbol")

    def on_add_order_book(self, order_book: OrderBook) -> None:
        self._record("add_order_book")

    def on_update_order_book(self, order_book: OrderBook, top: bool) -> None:
        self._record("update_order_book")

    def on_delete_order_book(self, order_book: OrderBook) -> None:
        self._record("delete_order_book")

    def on_add_level(self, order_book: OrderBook, level: Level, top: bool) -> None:
        self._record("add_level")

    def on_update_level(self, order_book: OrderBook, level: Level, top: bool) -> None:
        self._record("update_level")

    def on_delete_level(self, order_book: OrderBook, level: Level, top: bool) -> None:
        self._record("delete_level")

    def on_add_order(self, order: Order) -> None:
        self._record("add_order")

    def on_update_order(self, order: Order) -> None:
        self._record("update_order")

    def on_delete_order(self, order: Order) -> None:
        self._record("delete_order")

    def on_execute_order(self, order: Order, price: int, quantity: int) -> None:
        self._record("execute_order")


def _front(level: Optional[Level]) -> Optional[Order]:
    if level is None:
        return None
    orders = level.order_list
    return orders[0] if orders else None


def _following(order: Order) -> Optional[Order]:
    """The order queued right after ``order`` at its price level."""
    level = order.level
    if level is None:
        return None
    orders = level.order_list
    for position, candidate in enumerate(orders):
        if candidate is order:
            return orders[position + 1] if position + 1 < len(orders) else None
    return None


class MatchingEngine:
    """Order books, resting orders and the matching algorithm working on them."""

    def __init__(self, handler: Optional[MarketHandler] = None, matching: bool = False) -> None:
        self.handler = handler if handler is not None else MarketHandler()
        self.order_books: dict[int, OrderBook] = {}
        self.orders: dict[int, Order] = {}
        self.matching = matching

    # Public matching entry point

    def match(self) -> None:
        """Match crossed orders in every order book."""
        for book in list(self.order_books.values()):
            self._match_book(book, False)

    # Lookup helpers

    def _order_book(self, symbol_id: int) -> OrderBook:
        book = self.order_books.get(symbol_id)
        if book is None:
            raise MatchingError(ErrorCode.ORDER_BOOK_NOT_FOUND)
        return book

    def _find_order(self, id: int) -> Order:
        if id == 0:
            raise MatchingError(ErrorCode.ORDER_ID_INVALID, "Order Id must be greater than zero")
        order = self.orders.get(id)
        if order is None:
            raise MatchingError(ErrorCode.ORDER_NOT_FOUND)
        return order

    def _is_live(self, order: Order) -> bool:
        return self.orders.get(order.id) is order

    def _register(self, order: Order) -> None:
        if order.id in self.orders:
            self.handler.on_delete_order(order)
            raise MatchingError(ErrorCode.ORDER_DUPLICATE)
        self.orders[order.id] = order

    # Book maintenance by order type

    def _update_level(self, book: OrderBook, update: LevelUpdate) -> None:
        if update.type is UpdateType.ADD:
            self.handler.on_add_level(book, update.level, update.top)
        elif update.type is UpdateType.UPDATE:
            self.handler.on_update_level(book, update.level, update.top)
        elif update.type is UpdateType.DELETE:
            self.handler.on_delete_level(book, update.level, update.top)
        self.handler.on_update_order_book(book, update.top)

    def _add_to_book(self, book: OrderBook, order: Order) -> None:
        if order.type is OrderType.LIMIT:
            self._update_level(book, book.add_order(order))
        elif order.type in _STOP_TYPES:
            book.add_stop_order(order)
        elif order.type in _TRAILING_TYPES:
            book.add_trailing_stop_order(order)

    def _reduce_in_book(
        self, book: OrderBook, order: Order, quantity: int, hidden: int, visible: int
    ) -> None:
        if order.type is OrderType.LIMIT:
            self._update_level(book, book.reduce_order(order, quantity, hidden, visible))
        elif order.type in _STOP_TYPES:
            book.reduce_stop_order(order, quantity, hidden, visible)
        elif order.type in _TRAILING_TYPES:
            book.reduce_trailing_stop_order(order, quantity, hidden, visible)

    def _remove_from_book(self, book: OrderBook, order: Order) -> None:
        if order.type is OrderType.LIMIT:
            self._update_level(book, book.delete_order(order))
        elif order.type in _STOP_TYPES:
            book.delete_stop_order(order)
        elif order.type in _TRAILING_TYPES:
            book.delete_trailing_stop_order(order)

    # Internal order operations used while matching

    def _reduce_order(self, id: int, quantity: int, internal: bool) -> None:
        if id == 0:
            raise MatchingError(ErrorCode.ORDER_ID_INVALID, "Order Id must be greater than zero")
        if quantity == 0:
            raise MatchingError(
                ErrorCode.ORDER_QUANTITY_INVALID, "Order quantity must be greater than zero"
            )
        order = self._find_order(id)
        book = self._order_book(order.symbol_id)

        quantity = min(quantity, order.leaves_quantity)
        hidden = order.hidden_quantity()
        visible = order.visible_quantity()
        order.leaves_quantity -= quantity
        hidden -= order.hidden_quantity()
        visible -= order.visible_quantity()

        if order.leaves_quantity > 0:
            self.handler.on_update_order(order)
            self._reduce_in_book(book, order, quantity, hidden, visible)
        else:
            self.handler.on_delete_order(order)
            self._reduce_in_book(book, order, quantity, hidden, visible)
            del self.orders[id]

        if self.matching:
            self._match_book(book, internal)
        book.reset_matching_price()

    def _delete_order(self, id: int, internal: bool) -> None:
        order = self._find_order(id)
        book = self._order_book(order.symbol_id)
        self._remove_from_book(book, order)
        self.handler.on_delete_order(order)
        del self.orders[id]
        if self.matching:
            self._match_book(book, internal)
        book.reset_matching_price()

    def _execute(self, book: OrderBook, order: Order, price: int, quantity: int) -> None:
        self.handler.on_execute_order(order, price, quantity)
        book.update_last_price(order, price)
        book.update_matching_price(order, price)
        order.executed_quantity += quantity

    # Matching

    def _match_book(self, book: OrderBook, internal: bool) -> None:
        while True:
            while True:
                bid_level = book.best_bid
                ask_level = book.best_ask
                if bid_level is None or ask_level is None or bid_level.price < ask_level.price:
                    break

                for bid_order, ask_order in zip(bid_level.order_list, ask_level.order_list):
                    if not (self._is_live(bid_order) and self._is_live(ask_order)):
                        break

                    if bid_order.is_aon() or ask_order.is_aon():
                        chain = self._chain_between(book, bid_level, ask_level)
                        if chain == 0:
                            return
                        self._execute_matching_chain(book, bid_level, bid_order.price, chain)
                        self._execute_matching_chain(book, ask_level, ask_order.price, chain)
                        break

                    executing, reducing = bid_order, ask_order
                    if executing.leaves_quantity > reducing.leaves_quantity:
                        executing, reducing = reducing, executing

                    quantity = executing.leaves_quantity
                    price = executing.price

                    self._execute(book, executing, price, quantity)
                    self._delete_order(executing.id, True)

                    if not self._is_live(reducing):
                        break
                    self._execute(book, reducing, price, quantity)
                    self._reduce_order(reducing.id, quantity, True)

                if not internal:
                    self._activate_stop_level(book, book.best_buy_stop, book.market_price_ask())
                    self._activate_stop_level(book, book.best_sell_stop, book.market_price_bid())

            if internal:
                break
            if not self._activate_stop_orders(book):
                break

    def _match_market(self, book: OrderBook, order: Order) -> None:
        if order.is_buy():
            best = book.best_ask
            if best is None:
                return
            order.price = best.price
            if order.price > ORDER_INT_MAX - order.slippage:
                order.price = ORDER_INT_MAX
            else:
                order.price += order.slippage
        else:
            best = book.best_bid
            if best is None:
                return
            order.price = best.price
            # The threshold wraps around like an unsigned 64-bit sum
            if order.price < ((ORDER_INT_MAX + order.slippage) & _U64_MASK):
                order.price = ORDER_INT_MAX
            else:
                order.price -= order.slippage
        self._match_order(book, order)

    def _match_limit(self, book: OrderBook, order: Order) -> None:
        self._match_order(book, order)

    def _match_order(self, book: OrderBook, order: Order) -> None:
        while True:
            level = book.best_ask if order.is_buy() else book.best_bid
            if level is None:
                return
            if order.is_buy():
                arbitrage = order.price >= level.price
            else:
                arbitrage = order.price <= level.price
            if not arbitrage:
                return

            if order.is_fok() or order.is_aon():
                chain = self._chain_for_volume(book, level, order.price, order.leaves_quantity)
                if chain == 0:
                    return
                self._execute_matching_chain(book, level, order.price, chain)
                self._execute(book, order, order.price, order.leaves_quantity)
                order.leaves_quantity = 0
                return

            progressed = False
            for executing in level.order_list:
                if not self._is_live(executing):
                    continue
                quantity = min(executing.leaves_quantity, order.leaves_quantity)
                if executing.is_aon() and executing.leaves_quantity > order.leaves_quantity:
                    return
                price = executing.price
                self._execute(book, executing, price, quantity)
                self._reduce_order(executing.id, quantity, True)
                self._execute(book, order, price, quantity)
                order.leaves_quantity -= quantity
                progressed = True
                if order.leaves_quantity == 0:
                    return
            if not progressed:
                return

    # Stop orders

    def _activate_stop_orders(self, book: OrderBook) -> bool:
        result = False
        stop = False
        while not stop:
            stop = True

            if self._activate_stop_level(
                book, book.best_buy_stop, book.market_price_ask()
            ) or self._activate_stop_level(
                book, book.best_trailing_buy_stop, book.market_price_ask()
            ):
                result = True
                stop = False

            self._recalculate_trailing_stop_price(book, book.best_ask)

            if self._activate_stop_level(
                book, book.best_sell_stop, book.market_price_bid()
            ) or self._activate_stop_level(
                book, book.best_trailing_sell_stop, book.market_price_bid()
            ):
                result = True
                stop = False

            self._recalculate_trailing_stop_price(book, book.best_bid)
        return result

    def _activate_stop_level(
        self, book: OrderBook, level: Optional[Level], stop_price: int
    ) -> bool:
        if level is None:
            return False
        if level.is_bid():
            arbitrage = stop_price <= level.price
        else:
            arbitrage = stop_price >= level.price
        if not arbitrage:
            return False

        result = False
        for order in level.order_list:
            if not self._is_live(order):
                continue
            if order.type in (OrderType.STOP, OrderType.TRAILING_STOP):
                result = self._activate_stop_order(book, order)
            elif order.type in (OrderType.STOP_LIMIT, OrderType.TRAILING_STOP_LIMIT):
                result = self._activate_stop_limit_order(book, order)
        return result

    def _activate_stop_order(self, book: OrderBook, order: Order) -> bool:
        self._remove_from_book(book, order)

        order.type = OrderType.MARKET
        order.price = 0
        order.stop_price = 0
        order.time_in_force = OrderTimeInForce.FOK if order.is_fok() else OrderTimeInForce.IOC

        self.handler.on_update_order(order)
        self._match_market(book, order)
        self.handler.on_delete_order(order)
        self.orders.pop(order.id, None)
        return True

    def _activate_stop_limit_order(self, book: OrderBook, order: Order) -> bool:
        self._remove_from_book(book, order)

        order.type = OrderType.LIMIT
        order.stop_price = 0

        self.handler.on_update_order(order)
        self._match_limit(book, order)

        if order.leaves_quantity > 0 and not order.is_ioc() and not order.is_fok():
            self._update_level(book, book.add_order(order))
        else:
            self.handler.on_delete_order(order)
            self.orders.pop(order.id, None)
        return True

    # Matching chains for 'Fill-Or-Kill' and 'All-Or-None' orders

    def _chain_for_volume(
        self, book: OrderBook, level: Optional[Level], price: int, volume: int
    ) -> int:
        available = 0
        while level is not None:
            if level.is_bid():
                arbitrage = price <= level.price
            else:
                arbitrage = price >= level.price
            if not arbitrage:
                return 0
            for order in level.order_list:
                need = volume - available
                if order.is_aon():
                    quantity = order.leaves_quantity
                else:
                    quantity = min(order.leaves_quantity, need)
                available += quantity
                if volume == available:
                    return available
                if volume < available:
                    return 0
            level = book.get_next_level(level)
        return 0

    def _chain_between(self, book: OrderBook, bid_level: Level, ask_level: Level) -> int:
        longest_level: Optional[Level] = bid_level
        shortest_level: Optional[Level] = ask_level
        longest = _front(bid_level)
        shortest = _front(ask_level)
        if longest is None or shortest is None:
            return 0
        required = longest.leaves_quantity
        available = 0

        if longest.is_aon() and shortest.is_aon():
            if shortest.leaves_quantity > longest.leaves_quantity:
                required = shortest.leaves_quantity
                available = 0
                longest_level, shortest_level = shortest_level, longest_level
                longest, shortest = shortest, longest
        elif shortest.is_aon():
            required = shortest.leaves_quantity
            available = 0
            longest_level, shortest_level = shortest_level, longest_level
            longest, shortest = shortest, longest

        while longest_level is not None and shortest_level is not None:
            while longest is not None and shortest is not None:
                need = required - available
                if shortest.is_aon():
                    quantity = shortest.leaves_quantity
                else:
                    quantity = min(shortest.leaves_quantity, need)
                available += quantity

                if required == available:
                    return required

                if required < available:
                    following = _following(longest)
                    longest = shortest
                    shortest = following
                    required, available = available, required
                    continue

                shortest = _following(shortest)

            if longest is None:
                longest_level = book.get_next_level(longest_level)
                if longest_level is not None:
                    longest = _front(longest_level)

            if shortest is None:
                shortest_level = book.get_next_level(shortest_level)
                if shortest_level is not None:
                    shortest = _front(shortest_level)
        return 0

    def _execute_matching_chain(
        self, book: OrderBook, level: Optional[Level], price: int, volume: int
    ) -> None:
        while volume > 0 and level is not None:
            next_level = book.get_next_level(level)
            for order in level.order_list:
                if volume <= 0:
                    break
                if not self._is_live(order):
                    continue
                if order.is_aon():
                    quantity = order.leaves_quantity
                    self._execute(book, order, price, quantity)
                    self._delete_order(order.id, True)
                else:
                    quantity = min(order.leaves_quantity, volume)
                    self._execute(book, order, price, quantity)
                    self._reduce_order(order.id, quantity, True)
                volume -= quantity
            level = next_level

    # Trailing stops

    def _recalculate_trailing_stop_price(self, book: OrderBook, level: Optional[Level]) -> None:
        if level is None:
            return

        if level.type is LevelType.ASK:
            old_price = book.trailing_ask_price
            new_price = book.market_trailing_stop_price_ask()
            book.trailing_ask_price = new_price
            if new_price >= old_price:
                return
        if level.type is LevelType.BID:
            old_price = book.trailing_bid_price
            new_price = book.market_trailing_stop_price_bid()
            book.trailing_bid_price = new_price
            if new_price <= old_price:
                return

        def first_level() -> Optional[Level]:
            if level.type is LevelType.ASK:
                return book.best_trailing_buy_stop
            return book.best_trailing_sell_stop

        previous: Optional[Level] = None
        current = first_level()
        while current is not None:
            recalculated = False
            for order in current.order_list:
                old_stop_price = order.stop_price
                new_stop_price = book.calculate_trailing_stop_price(order)
                if new_stop_price == old_stop_price:
                    continue

                book.delete_trailing_stop_order(order)
                if order.type is OrderType.TRAILING_STOP:
                    order.stop_price = new_stop_price
                elif order.type is OrderType.TRAILING_STOP_LIMIT:
                    diff = order.price - order.stop_price
                    order.stop_price = new_stop_price
                    order.price = order.stop_price + diff
                self.handler.on_update_order(order)
                book.add_trailing_stop_order(order)
                recalculated = True

            if recalculated:
                current = previous if previous is not None else first_level()
            else:
                previous = current
                current = book.get_next_trailing_stop_level(current)