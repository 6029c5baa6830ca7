import pytest

from tradecore.market_manager import MarketManager
from tradecore.matching import MarketHandler
from tradecore.order import ErrorCode, MatchingError, Order, OrderSide, OrderTimeInForce, OrderType
from tradecore.order_book import Symbol


class RecordingHandler(MarketHandler):
    def __init__(self):
        self.events = []
        self.executions = []

    def on_add_symbol(self, symbol):
        self.events.append(("add_symbol", symbol.id))

    def on_delete_symbol(self, symbol):
        self.events.append(("delete_symbol", symbol.id))

    def on_add_order_book(self, order_book):
        self.events.append(("add_book", order_book.symbol.id))

    def on_delete_order_book(self, order_book):
        self.events.append(("delete_book", order_book.symbol.id))

    def on_execute_order(self, order, price, quantity):
        self.executions.append((order.id, price, quantity))


SYMBOL = Symbol(1, "AAPL")


def limit(id, side, price, quantity, **kwargs):
    return Order(id, SYMBOL.id, OrderType.LIMIT, side, price=price, quantity=quantity, **kwargs)


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def market(handler):
    manager = MarketManager(handler)
    manager.add_symbol(SYMBOL)
    manager.add_order_book(SYMBOL)
    return manager


def test_add_symbol_and_order_book_notify_handler(market, handler):
    assert handler.events == [("add_symbol", 1), ("add_book", 1)]
    assert market.get_symbol(1) == SYMBOL
    assert market.get_order_book(1).symbol == SYMBOL


def test_duplicate_symbol_is_rejected(market):
    with pytest.raises(MatchingError) as info:
        market.add_symbol(Symbol(1, "MSFT"))
    assert info.value.code is ErrorCode.SYMBOL_DUPLICATE


def test_delete_symbol(market, handler):
    market.delete_symbol(1)
    assert market.get_symbol(1) is None
    assert handler.events[-1] == ("delete_symbol", 1)
    with pytest.raises(MatchingError) as info:
        market.delete_symbol(1)
    assert info.value.code is ErrorCode.SYMBOL_NOT_FOUND


def test_order_book_requires_symbol():
    manager = MarketManager()
    with pytest.raises(MatchingError) as info:
        manager.add_order_book(Symbol(7, "IBM"))
    assert info.value.code is ErrorCode.SYMBOL_NOT_FOUND


def test_duplicate_order_book_is_rejected(market):
    with pytest.raises(MatchingError) as info:
        market.add_order_book(SYMBOL)
    assert info.value.code is ErrorCode.ORDER_BOOK_DUPLICATE


def test_delete_order_book(market, handler):
    market.delete_order_book(1)
    assert market.get_order_book(1) is None
    assert handler.events[-1] == ("delete_book", 1)
    with pytest.raises(MatchingError) as info:
        market.delete_order_book(1)
    assert info.value.code is ErrorCode.ORDER_BOOK_NOT_FOUND


def test_add_order_without_book(market):
    order = Order(1, 99, OrderType.LIMIT, OrderSide.BUY, price=10, quantity=5)
    with pytest.raises(MatchingError) as info:
        market.add_order(order)
    assert info.value.code is ErrorCode.ORDER_BOOK_NOT_FOUND


def test_add_order_validates(market):
    with pytest.raises(MatchingError) as info:
        market.add_order(limit(0, OrderSide.BUY, 100, 10))
    assert info.value.code is ErrorCode.ORDER_ID_INVALID


def test_duplicate_order_id(market):
    market.add_order(limit(1, OrderSide.BUY, 100, 10))
    with pytest.raises(MatchingError) as info:
        market.add_order(limit(1, OrderSide.BUY, 101, 10))
    assert info.value.code is ErrorCode.ORDER_DUPLICATE


def test_resting_order_is_a_copy(market):
    original = limit(1, OrderSide.BUY, 100, 10)
    market.add_order(original)
    stored = market.get_order(1)
    assert stored is not original
    assert stored.price == original.price
    book = market.get_order_book(1)
    assert book.best_bid.price == original.price
    assert book.best_bid.total_volume == original.quantity


def test_matching_is_disabled_by_default(market):
    assert market.is_matching_enabled() is False
    market.add_order(limit(1, OrderSide.BUY, 100, 10))
    market.add_order(limit(2, OrderSide.SELL, 100, 10))
    assert set(market.orders) == {1, 2}


def test_enable_matching_matches_crossed_orders(market, handler):
    market.add_order(limit(1, OrderSide.BUY, 100, 10))
    market.add_order(limit(2, OrderSide.SELL, 100, 10))
    market.enable_matching()
    assert market.is_matching_enabled() is True
    assert market.orders == {}
    assert sorted(handler.executions) == [(1, 100, 10), (2, 100, 10)]
    book = market.get_order_book(1)
    assert book.best_bid is None and book.best_ask is None


def test_disable_matching(market):
    market.enable_matching()
    market.disable_matching()
    assert market.is_matching_enabled() is False


def test_partial_fill_keeps_remainder(market):
    market.enable_matching()
    market.add_order(limit(1, OrderSide.BUY, 100, 10))
    market.add_order(limit(2, OrderSide.SELL, 99, 4))
    assert market.get_order(2) is None
    remaining = market.get_order(1)
    assert remaining.executed_quantity == 4
    assert remaining.leaves_quantity + remaining.executed_quantity == remaining.quantity
    assert market.get_order_book(1).best_bid.total_volume == remaining.leaves_quantity


def test_market_order_consumes_book(market, handler):
    market.enable_matching()
    market.add_order(limit(1, OrderSide.SELL, 100, 5))
    market.add_order(
        Order(
            2,
            SYMBOL.id,
            OrderType.MARKET,
            OrderSide.BUY,
            quantity=5,
            time_in_force=OrderTimeInForce.IOC,
        )
    )
    assert market.orders == {}
    assert (1, 100, 5) in handler.executions


def test_non_crossing_orders_rest(market):
    market.enable_matching()
    market.add_order(limit(1, OrderSide.BUY, 99, 10))
    market.add_order(limit(2, OrderSide.SELL, 101, 10))
    book = market.get_order_book(1)
    assert book.best_bid.price < book.best_ask.price
    assert set(market.orders) == {1, 2}