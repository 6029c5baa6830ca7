"""The market manager: symbols, order books and orders of a whole market."""

from __future__ import annotations

from typing import Optional

from tradecore.matching import MarketHandler
from tradecore.operations import OrderOperations
from tradecore.order import ErrorCode, MatchingError, Order
from tradecore.order_book import OrderBook, Symbol


class MarketManager(OrderOperations):
    """Keeps symbols, their order books and resting orders, and matches them.

    Matching is disabled by default; every failing operation raises
    :class:`MatchingError` with the reason in its ``code``.
    """

    def __init__(self, handler: Optional[MarketHandler] = None, matching: bool = False) -> None:
        super().__init__(handler, matching)
        self.symbols: dict[int, Symbol] = {}

    def __repr__(self) -> str:
        return (
            f"MarketManager(symbols={len(self.symbols)}, order_books={len(self.order_books)}, "
            f"orders={len(self.orders)}, matching={self.matching})"
        )

    # Symbols

    def add_symbol(self, symbol: Symbol) -> None:
        """Register a symbol; its id must not be in use."""
        if symbol.id in self.symbols:
            raise MatchingError(ErrorCode.SYMBOL_DUPLICATE, f"Duplicate symbol: {symbol.id}")
        self.symbols[symbol.id] = symbol
        self.handler.on_add_symbol(symbol)

    def delete_symbol(self, id: int) -> None:
        """Remove the symbol with the given id."""
        symbol = self.symbols.get(id)
        if symbol is None:
            raise MatchingError(ErrorCode.SYMBOL_NOT_FOUND, f"Symbol not found: {id}")
        self.handler.on_delete_symbol(symbol)
        del self.symbols[id]

    def get_symbol(self, id: int) -> Optional[Symbol]:
        return self.symbols.get(id)

    # Order books

    def add_order_book(self, symbol: Symbol) -> None:
        """Create an order book for a registered symbol."""
        registered = self.symbols.get(symbol.id)
        if registered is None:
            raise MatchingError(ErrorCode.SYMBOL_NOT_FOUND, f"Symbol not found: {symbol.id}")
        if symbol.id in self.order_books:
            raise MatchingError(
                ErrorCode.ORDER_BOOK_DUPLICATE, f"Duplicate order book: {symbol.id}"
            )
        book = OrderBook(registered)
        self.order_books[symbol.id] = book
        self.handler.on_add_order_book(book)

    def delete_order_book(self, id: int) -> None:
        """Remove the order book of the symbol with the given id."""
        book = self.order_books.get(id)
        if book is None:
            raise MatchingError(ErrorCode.ORDER_BOOK_NOT_FOUND, f"Order book not found: {id}")
        self.handler.on_delete_order_book(book)
        del self.order_books[id]

    def get_order_book(self, id: int) -> Optional[OrderBook]:
        return self.order_books.get(id)

    # Orders

    def get_order(self, id: int) -> Optional[Order]:
        return self.orders.get(id)

    def add_order(self, order: Order) -> None:
        """Validate ``order`` and put a copy of it on the market."""
        self._add_order(order)

    # Matching switch

    def enable_matching(self) -> None:
        """Turn automatic matching on and match everything already crossed."""
        self.matching = True
        self.match()

    def disable_matching(self) -> None:
        self.matching = False

    def is_matching_enabled(self) -> bool:
        return self.matching