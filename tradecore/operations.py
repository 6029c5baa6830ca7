"""Order operations of the market: add, reduce, modify, replace, delete and execute."""

from __future__ import annotations

import copy
from typing import Optional

from tradecore.matching import MatchingEngine
from tradecore.order import ErrorCode, MatchingError, Order, OrderTimeInForce, OrderType
from tradecore.order_book import OrderBook


def _check_id(id: int, what: str = "Order Id") -> None:
    if id == 0:
        raise MatchingError(ErrorCode.ORDER_ID_INVALID, f"{what} must be greater than zero")


def _check_quantity(quantity: int) -> None:
    if quantity == 0:
        raise MatchingError(
            ErrorCode.ORDER_QUANTITY_INVALID, "Order quantity must be greater than zero"
        )


class OrderOperations(MatchingEngine):
    """Matching engine extended with the operations that change individual orders.

    Every operation raises :class:`MatchingError` when it cannot be carried out.
    """

    # Adding orders

    def _add_order(self, order: Order) -> None:
        """Validate a copy of ``order`` and put it on the market."""
        order.validate()
        if order.type is OrderType.MARKET:
            self._add_market_order(order, False)
        elif order.type is OrderType.LIMIT:
            self._add_limit_order(order, False)
        elif order.type in (OrderType.STOP, OrderType.TRAILING_STOP):
            self._add_stop_order(order, False)
        elif order.type in (OrderType.STOP_LIMIT, OrderType.TRAILING_STOP_LIMIT):
            self._add_stop_limit_order(order, False)
        else:
            raise MatchingError(ErrorCode.ORDER_TYPE_INVALID)

    @staticmethod
    def _copy(order: Order) -> Order:
        new_order = copy.copy(order)
        new_order.level = None
        return new_order

    def _finish(self, book: OrderBook, internal: bool) -> None:
        if self.matching:
            self._match_book(book, internal)
        book.reset_matching_price()

    def _rest_limit_or_drop(self, book: OrderBook, order: Order) -> None:
        if order.leaves_quantity > 0 and not order.is_ioc() and not order.is_fok():
            self._register(order)
            self._update_level(book, book.add_order(order))
        else:
            self.handler.on_delete_order(order)

    def _rest_stop_or_drop(self, book: OrderBook, order: Order) -> None:
        if order.leaves_quantity > 0:
            self._register(order)
            if order.is_trailing_stop() or order.is_trailing_stop_limit():
                book.add_trailing_stop_order(order)
            else:
                book.add_stop_order(order)
        else:
            self.handler.on_delete_order(order)

    def _stop_triggered(self, book: OrderBook, order: Order) -> bool:
        if order.is_buy():
            return order.stop_price <= book.market_price_ask()
        return order.stop_price >= book.market_price_bid()

    def _add_market_order(self, order: Order, internal: bool) -> None:
        book = self._order_book(order.symbol_id)
        new_order = self._copy(order)
        self.handler.on_add_order(new_order)
        if self.matching:
            self._match_market(book, new_order)
        self.handler.on_delete_order(new_order)
        self._finish(book, internal)

    def _add_limit_order(self, order: Order, internal: bool) -> None:
        book = self._order_book(order.symbol_id)
        new_order = self._copy(order)
        self.handler.on_add_order(new_order)
        if self.matching:
            self._match_limit(book, new_order)
        self._rest_limit_or_drop(book, new_order)
        self._finish(book, internal)

    def _add_stop_order(self, order: Order, internal: bool) -> None:
        book = self._order_book(order.symbol_id)
        new_order = self._copy(order)

        if new_order.is_trailing_stop() or new_order.is_trailing_stop_limit():
            new_order.stop_price = book.calculate_trailing_stop_price(new_order)

        self.handler.on_add_order(new_order)

        if self.matching and self._stop_triggered(book, new_order):
            new_order.type = OrderType.MARKET
            new_order.price = 0
            new_order.stop_price = 0
            new_order.time_in_force = (
                OrderTimeInForce.FOK if new_order.is_fok() else OrderTimeInForce.IOC
            )
            self.handler.on_update_order(new_order)
            self._match_market(book, new_order)
            self.handler.on_delete_order(new_order)
            self._finish(book, internal)
            return

        self._rest_stop_or_drop(book, new_order)
        self._finish(book, internal)

    def _add_stop_limit_order(self, order: Order, internal: bool) -> None:
        book = self._order_book(order.symbol_id)
        new_order = self._copy(order)

        if new_order.is_trailing_stop() or new_order.is_trailing_stop_limit():
            diff = new_order.price - new_order.stop_price
            new_order.stop_price = book.calculate_trailing_stop_price(new_order)
            new_order.price = new_order.stop_price + diff

        self.handler.on_add_order(new_order)

        if self.matching and self._stop_triggered(book, new_order):
            new_order.type = OrderType.LIMIT
            new_order.stop_price = 0
            self.handler.on_update_order(new_order)
            self._match_limit(book, new_order)
            self._rest_limit_or_drop(book, new_order)
            self._finish(book, internal)
            return

        self._rest_stop_or_drop(book, new_order)
        self._finish(book, internal)

    # Changing resting orders

    def reduce_order(self, id: int, quantity: int) -> None:
        """Reduce the leaves quantity of an order; an emptied order is removed."""
        self._reduce_order(id, quantity, False)

    def modify_order(self, id: int, new_price: int, new_quantity: int) -> None:
        """Give an order a new price and quantity."""
        self._modify_order(id, new_price, new_quantity, False, False)

    def mitigate_order(self, id: int, new_price: int, new_quantity: int) -> None:
        """Modify an order with In-Flight Mitigation: executed quantity is not refilled."""
        self._modify_order(id, new_price, new_quantity, True, False)

    def _modify_order(
        self, id: int, new_price: int, new_quantity: int, mitigate: bool, internal: bool
    ) -> None:
        _check_id(id)
        _check_quantity(new_quantity)
        order = self._find_order(id)
        book = self._order_book(order.symbol_id)

        self._remove_from_book(book, order)

        order.price = new_price
        order.quantity = new_quantity
        order.leaves_quantity = new_quantity

        if mitigate:
            if new_quantity > order.executed_quantity:
                order.leaves_quantity = new_quantity - order.executed_quantity
            else:
                order.leaves_quantity = 0

        if order.leaves_quantity > 0:
            self.handler.on_update_order(order)
            if self.matching:
                self._match_limit(book, order)
            if order.leaves_quantity > 0:
                self._add_to_book(book, order)

        if order.leaves_quantity == 0:
            self.handler.on_delete_order(order)
            self.orders.pop(id, None)

        self._finish(book, internal)

    def replace_order(self, id: int, new_id: int, new_price: int, new_quantity: int) -> None:
        """Replace a limit order with a fresh one under ``new_id``."""
        self._replace_order(id, new_id, new_price, new_quantity, False)

    def _replace_order(
        self, id: int, new_id: int, new_price: int, new_quantity: int, internal: bool
    ) -> None:
        _check_id(id)
        _check_id(new_id, "New order Id")
        _check_quantity(new_quantity)
        order = self._find_order(id)
        if not order.is_limit():
            raise MatchingError(
                ErrorCode.ORDER_TYPE_INVALID,
                "Replace order operation is valid only for limit orders",
            )
        book = self._order_book(order.symbol_id)

        self._remove_from_book(book, order)
        self.handler.on_delete_order(order)
        del self.orders[id]

        order.id = new_id
        order.price = new_price
        order.quantity = new_quantity
        order.executed_quantity = 0
        order.leaves_quantity = new_quantity

        self.handler.on_add_order(order)
        if self.matching:
            self._match_limit(book, order)

        if order.leaves_quantity > 0:
            self._register(order)
            self._add_to_book(book, order)
        else:
            self.handler.on_delete_order(order)

        self._finish(book, internal)

    def replace_order_with(self, id: int, new_order: Order) -> None:
        """Delete order ``id`` and add ``new_order`` in its place."""
        self.delete_order(id)
        self._add_order(new_order)

    def delete_order(self, id: int) -> None:
        """Remove an order from the market."""
        self._delete_order(id, False)

    def execute_order(self, id: int, quantity: int, price: Optional[int] = None) -> None:
        """Execute part of an order, at ``price`` or at the order's own price."""
        _check_id(id)
        _check_quantity(quantity)
        order = self._find_order(id)
        book = self._order_book(order.symbol_id)

        quantity = min(quantity, order.leaves_quantity)
        execution_price = order.price if price is None else price

        self._execute(book, order, execution_price, quantity)

        hidden = order.hidden_quantity()
        visible = order.visible_quantity()
        order.leaves_quantity -= quantity
        hidden -= order.hidden_quantity()
        visible -= order.visible_quantity()

        self._reduce_in_book(book, order, quantity, hidden, visible)

        if order.leaves_quantity > 0:
            self.handler.on_update_order(order)
        else:
            self.handler.on_delete_order(order)
            del self.orders[id]

        self._finish(book, False)