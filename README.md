# tradecore

An in-memory order matching engine with price-level order books, a
streaming parser for NASDAQ TotalView-ITCH market data, and a small helper
for keeping strings, lists and hashes in Redis.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Matching orders

`tradecore.market_manager.MarketManager` keeps symbols, their order books and
resting orders. Matching is off by default; `enable_matching()` turns it on
and immediately matches anything already crossed, `disable_matching()` turns
it off again and `is_matching_enabled()` reports the current state.

Market events are reported to a `tradecore.matching.MarketHandler`. Its
default hooks only count events in `event_counts`; subclass it and override
the `on_*` methods you need (`on_add_order`, `on_execute_order`,
`on_add_level`, `on_update_order_book` and so on).

```python
from tradecore.market_manager import MarketManager
from tradecore.matching import MarketHandler
from tradecore.order import Order, OrderSide, OrderType
from tradecore.order_book import Symbol


class Printer(MarketHandler):
    def on_execute_order(self, order, price, quantity):
        print(f"order {order.id} executed {quantity} @ {price}")


manager = MarketManager(Printer())
symbol = Symbol(0, "TEST")
manager.add_symbol(symbol)
manager.add_order_book(symbol)
manager.enable_matching()

manager.add_order(Order(id=1, symbol_id=0, type=OrderType.LIMIT,
                        side=OrderSide.SELL, price=100, quantity=10))
manager.add_order(Order(id=2, symbol_id=0, type=OrderType.LIMIT,
                        side=OrderSide.BUY, price=100, quantity=4))

print(manager.get_order(1).leaves_quantity)   # 6
print(manager.get_order_book(0).best_ask.price)  # 100
```

`add_order` validates the order (`Order.validate`) and places a copy of it on
the market. Supported order types (`OrderType`) are market, limit, stop,
stop-limit, trailing stop and trailing stop-limit; time in force
(`OrderTimeInForce`) is good-till-cancelled, Immediate-Or-Cancel,
Fill-Or-Kill or All-Or-None. `max_visible_quantity` makes iceberg and hidden
orders; trailing orders take a `trailing_distance` and `trailing_step`, where
negative values are hundredths of a percent of the market price.

Resting orders can be changed with `reduce_order`, `modify_order`,
`mitigate_order` (modify without refilling what was already executed),
`replace_order`, `replace_order_with`, `delete_order` and
`execute_order(id, quantity, price=None)`.

Every failing operation raises `tradecore.order.MatchingError`; its `code`
attribute is an `ErrorCode` such as `ORDER_NOT_FOUND`, `SYMBOL_DUPLICATE` or
`ORDER_PARAMETER_INVALID`.

`tradecore.order_book.OrderBook` can also be inspected directly: `best_bid`,
`best_ask`, the stop level properties, `get_bid`/`get_ask`, `get_next_level`
and the market price methods (`market_price_bid`, `market_price_ask`, ...).
Each `Level` carries its total, hidden and visible volume and its queued
orders in `order_list`.

## Parsing ITCH data

`tradecore.itch.ITCHHandler.process` accepts chunks of a stream of ITCH
messages, each preceded by a two-byte big-endian length, in any split;
messages that arrive across chunk boundaries are kept until complete. Each
decoded message is passed to `on_message`; returning False from it stops
processing and makes `process` return False. `reset()` drops a partially
received message.

```python
from tradecore.itch import ITCHHandler


class Collector(ITCHHandler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def on_message(self, message):
        self.messages.append(message)
        return True


handler = Collector()
with open("feed.itch", "rb") as feed:
    while chunk := feed.read(65536):
        handler.process(chunk)
```

A single message body can be decoded with `parse_message`, which returns one
of the message dataclasses (`AddOrderMessage`, `OrderExecutedMessage`,
`StockDirectoryMessage`, ...) or `UnknownMessage` for an unrecognised type.
It raises `ValueError` for an empty message or one whose size does not match
its type.

## Redis storage

`tradecore.redis_db.RedisStore` wraps a Redis client (an existing one, or a
new one built from connection keyword arguments) with `get`, `set`,
`delete`, `lrange`, `append`, `last_index`, `hmset` and `hgetall`. Values come
back as `str`. Connection and command failures are not caught: they raise
`redis.RedisError`.

## What it does not do

The package is a library only: it has no command-line program, does not
connect to an exchange or market data feed by itself, and does not save the
state of the market manager or order books anywhere; `RedisStore` is a
separate helper and is not wired into the matching engine.