import pytest

from tradecore.order import (
    ORDER_INT_MAX,
    ErrorCode,
    MatchingError,
    Order,
    OrderSide,
    OrderTimeInForce,
    OrderType,
)


def _order(**kwargs):
    params = dict(id=1, symbol_id=0, type=OrderType.LIMIT, side=OrderSide.BUY, price=100, quantity=10)
    params.update(kwargs)
    return Order(**params)


def _outcome(order):
    try:
        order.validate()
    except MatchingError as error:
        return error.code
    return ErrorCode.OK


@pytest.mark.parametrize(
    "kwargs, expected",
    [
        ({}, ErrorCode.OK),
        ({"id": 0}, ErrorCode.ORDER_ID_INVALID),
        ({"leaves_quantity": 11}, ErrorCode.ORDER_QUANTITY_INVALID),
        ({"quantity": 0}, ErrorCode.ORDER_QUANTITY_INVALID),
        ({"type": OrderType.MARKET}, ErrorCode.ORDER_PARAMETER_INVALID),
        ({"type": OrderType.MARKET, "time_in_force": OrderTimeInForce.IOC}, ErrorCode.OK),
        ({"type": OrderType.MARKET, "time_in_force": OrderTimeInForce.FOK}, ErrorCode.OK),
        (
            {"type": OrderType.MARKET, "time_in_force": OrderTimeInForce.FOK, "max_visible_quantity": 5},
            ErrorCode.ORDER_PARAMETER_INVALID,
        ),
        ({"slippage": 5}, ErrorCode.ORDER_PARAMETER_INVALID),
        ({"max_visible_quantity": 5}, ErrorCode.OK),
        ({"type": OrderType.STOP, "stop_price": 100}, ErrorCode.OK),
        (
            {"type": OrderType.STOP, "time_in_force": OrderTimeInForce.AON},
            ErrorCode.ORDER_PARAMETER_INVALID,
        ),
        ({"type": OrderType.STOP, "max_visible_quantity": 3}, ErrorCode.ORDER_PARAMETER_INVALID),
        ({"type": OrderType.STOP_LIMIT, "slippage": 2}, ErrorCode.ORDER_PARAMETER_INVALID),
        ({"type": OrderType.STOP_LIMIT, "time_in_force": OrderTimeInForce.AON}, ErrorCode.OK),
        ({"type": OrderType.TRAILING_STOP}, ErrorCode.ORDER_PARAMETER_INVALID),
        ({"type": OrderType.TRAILING_STOP, "trailing_distance": 10, "trailing_step": 5}, ErrorCode.OK),
        (
            {"type": OrderType.TRAILING_STOP, "trailing_distance": 10, "trailing_step": 10},
            ErrorCode.ORDER_PARAMETER_INVALID,
        ),
        (
            {"type": OrderType.TRAILING_STOP, "trailing_distance": 10, "trailing_step": -1},
            ErrorCode.ORDER_PARAMETER_INVALID,
        ),
        (
            {"type": OrderType.TRAILING_STOP_LIMIT, "trailing_distance": -100, "trailing_step": -10},
            ErrorCode.OK,
        ),
        (
            {"type": OrderType.TRAILING_STOP_LIMIT, "trailing_distance": -1000, "trailing_step": 0},
            ErrorCode.OK,
        ),
        (
            {"type": OrderType.TRAILING_STOP_LIMIT, "trailing_distance": -1001, "trailing_step": -10},
            ErrorCode.ORDER_PARAMETER_INVALID,
        ),
        (
            {"type": OrderType.TRAILING_STOP_LIMIT, "trailing_distance": -100, "trailing_step": 1},
            ErrorCode.ORDER_PARAMETER_INVALID,
        ),
        (
            {"type": OrderType.TRAILING_STOP_LIMIT, "trailing_distance": -100, "trailing_step": -100},
            ErrorCode.ORDER_PARAMETER_INVALID,
        ),
        (
            {"type": OrderType.TRAILING_STOP_LIMIT, "trailing_distance": 10, "slippage": 1},
            ErrorCode.ORDER_PARAMETER_INVALID,
        ),
    ],
)
def test_validate_outcomes(kwargs, expected):
    assert _outcome(_order(**kwargs)) is expected


def test_matching_error_carries_code():
    with pytest.raises(MatchingError) as info:
        _order(id=0).validate()
    assert info.value.code is ErrorCode.ORDER_ID_INVALID


def test_leaves_quantity_defaults_to_quantity():
    order = _order(quantity=42)
    assert order.leaves_quantity == 42
    assert order.executed_quantity == 0


def test_explicit_leaves_quantity_is_kept():
    assert _order(quantity=42, leaves_quantity=7).leaves_quantity == 7


def test_defaults_are_not_iceberg_or_slippage():
    order = _order()
    assert order.max_visible_quantity == ORDER_INT_MAX
    assert not order.is_iceberg()
    assert not order.is_slippage()
    assert not order.is_hidden()
    assert order.visible_quantity() == order.leaves_quantity
    assert order.hidden_quantity() == 0


def test_iceberg_quantities_split_leaves():
    order = _order(quantity=100, max_visible_quantity=30)
    assert order.is_iceberg()
    assert order.visible_quantity() == 30
    assert order.hidden_quantity() + order.visible_quantity() == order.leaves_quantity


def test_hidden_order_has_no_visible_quantity():
    order = _order(quantity=25, max_visible_quantity=0)
    assert order.is_hidden()
    assert order.visible_quantity() == 0
    assert order.hidden_quantity() == order.leaves_quantity


def test_side_predicates():
    buy = _order(side=OrderSide.BUY)
    sell = _order(side=OrderSide.SELL)
    assert (buy.is_buy(), buy.is_sell()) == (True, False)
    assert (sell.is_buy(), sell.is_sell()) == (False, True)


@pytest.mark.parametrize(
    "order_type, predicate",
    [
        (OrderType.MARKET, "is_market"),
        (OrderType.LIMIT, "is_limit"),
        (OrderType.STOP, "is_stop"),
        (OrderType.STOP_LIMIT, "is_stop_limit"),
        (OrderType.TRAILING_STOP, "is_trailing_stop"),
        (OrderType.TRAILING_STOP_LIMIT, "is_trailing_stop_limit"),
    ],
)
def test_type_predicates_are_exclusive(order_type, predicate):
    order = _order(type=order_type)
    names = [
        "is_market",
        "is_limit",
        "is_stop",
        "is_stop_limit",
        "is_trailing_stop",
        "is_trailing_stop_limit",
    ]
    results = {name: getattr(order, name)() for name in names}
    assert [name for name, value in results.items() if value] == [predicate]


@pytest.mark.parametrize(
    "tif, expected",
    [
        (OrderTimeInForce.GTC, (False, False, False)),
        (OrderTimeInForce.IOC, (True, False, False)),
        (OrderTimeInForce.FOK, (False, True, False)),
        (OrderTimeInForce.AON, (False, False, True)),
    ],
)
def test_time_in_force_predicates(tif, expected):
    order = _order(time_in_force=tif)
    assert (order.is_ioc(), order.is_fok(), order.is_aon()) == expected