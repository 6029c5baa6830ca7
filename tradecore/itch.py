"""Decoding of NASDAQ TotalView-ITCH messages and length-prefixed ITCH streams."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Union

_HEADER_CODES = ("c", "H", "H", "T")


@dataclass(frozen=True)
class _Header:
    type: str
    stock_locate: int
    tracking_number: int
    timestamp: int


@dataclass(frozen=True)
class SystemEventMessage(_Header):
    event_code: str


@dataclass(frozen=True)
class StockDirectoryMessage(_Header):
    stock: str
    market_category: str
    financial_status_indicator: str
    round_lot_size: int
    round_lots_only: str
    issue_classification: str
    issue_sub_type: str
    authenticity: str
    short_sale_threshold_indicator: str
    ipo_flag: str
    luld_reference_price_tier: str
    etp_flag: str
    etp_leverage_factor: int
    inverse_indicator: str


@dataclass(frozen=True)
class StockTradingActionMessage(_Header):
    stock: str
    trading_state: str
    reserved: str
    reason: str


@dataclass(frozen=True)
class RegSHOMessage(_Header):
    stock: str
    reg_sho_action: str


@dataclass(frozen=True)
class MarketParticipantPositionMessage(_Header):
    mpid: str
    stock: str
    primary_market_maker: str
    market_maker_mode: str
    market_participant_state: str


@dataclass(frozen=True)
class MWCBDeclineMessage(_Header):
    level1: int
    level2: int
    level3: int


@dataclass(frozen=True)
class MWCBStatusMessage(_Header):
    breached_level: str


@dataclass(frozen=True)
class IPOQuotingMessage(_Header):
    stock: str
    ipo_release_time: int
    ipo_release_qualifier: str
    ipo_price: int


@dataclass(frozen=True)
class AddOrderMessage(_Header):
    order_reference_number: int
    buy_sell_indicator: str
    shares: int
    stock: str
    price: int


@dataclass(frozen=True)
class AddOrderMPIDMessage(_Header):
    order_reference_number: int
    buy_sell_indicator: str
    shares: int
    stock: str
    price: int
    attribution: str


@dataclass(frozen=True)
class OrderExecutedMessage(_Header):
    order_reference_number: int
    executed_shares: int
    match_number: int


@dataclass(frozen=True)
class OrderExecutedWithPriceMessage(_Header):
    order_reference_number: int
    executed_shares: int
    match_number: int
    printable: str
    execution_price: int


@dataclass(frozen=True)
class OrderCancelMessage(_Header):
    order_reference_number: int
    canceled_shares: int


@dataclass(frozen=True)
class OrderDeleteMessage(_Header):
    order_reference_number: int


@dataclass(frozen=True)
class OrderReplaceMessage(_Header):
    original_order_reference_number: int
    new_order_reference_number: int
    shares: int
    price: int


@dataclass(frozen=True)
class TradeMessage(_Header):
    order_reference_number: int
    buy_sell_indicator: str
    shares: int
    stock: str
    price: int
    match_number: int


@dataclass(frozen=True)
class CrossTradeMessage(_Header):
    shares: int
    stock: str
    cross_price: int
    match_number: int
    cross_type: str


@dataclass(frozen=True)
class BrokenTradeMessage(_Header):
    match_number: int


@dataclass(frozen=True)
class NOIIMessage(_Header):
    paired_shares: int
    imbalance_shares: int
    imbalance_direction: str
    stock: str
    far_price: int
    near_price: int
    current_reference_price: int
    cross_type: str
    price_variation_indicator: str


@dataclass(frozen=True)
class RPIIMessage(_Header):
    stock: str
    interest_flag: str


@dataclass(frozen=True)
class LULDAuctionCollarMessage(_Header):
    stock: str
    auction_collar_reference_price: int
    upper_auction_collar_price: int
    lower_auction_collar_price: int
    auction_collar_extension: int


@dataclass(frozen=True)
class UnknownMessage:
    type: str


Message = Union[
    SystemEventMessage,
    StockDirectoryMessage,
    StockTradingActionMessage,
    RegSHOMessage,
    MarketParticipantPositionMessage,
    MWCBDeclineMessage,
    MWCBStatusMessage,
    IPOQuotingMessage,
    AddOrderMessage,
    AddOrderMPIDMessage,
    OrderExecutedMessage,
    OrderExecutedWithPriceMessage,
    OrderCancelMessage,
    OrderDeleteMessage,
    OrderReplaceMessage,
    TradeMessage,
    CrossTradeMessage,
    BrokenTradeMessage,
    NOIIMessage,
    RPIIMessage,
    LULDAuctionCollarMessage,
    UnknownMessage,
]

# Message type -> (class, exact wire size, body field codes after the common header)
_LAYOUTS: dict[str, tuple[type, int, tuple[str, ...]]] = {
    "S": (SystemEventMessage, 12, ("c",)),
    "R": (
        StockDirectoryMessage,
        39,
        ("8s", "c", "c", "I", "c", "c", "2s", "c", "c", "c", "c", "c", "I", "c"),
    ),
    "H": (StockTradingActionMessage, 25, ("8s", "c", "c", "c")),
    "Y": (RegSHOMessage, 20, ("8s", "c")),
    "L": (MarketParticipantPositionMessage, 26, ("4s", "8s", "c", "c", "c")),
    "V": (MWCBDeclineMessage, 35, ("Q", "Q", "Q")),
    "W": (MWCBStatusMessage, 12, ("c",)),
    "K": (IPOQuotingMessage, 28, ("8s", "I", "c", "I")),
    "A": (AddOrderMessage, 36, ("Q", "c", "I", "8s", "I")),
    "F": (AddOrderMPIDMessage, 40, ("Q", "c", "I", "8s", "I", "c")),
    "E": (OrderExecutedMessage, 31, ("Q", "I", "Q")),
    "C": (OrderExecutedWithPriceMessage, 36, ("Q", "I", "Q", "c", "I")),
    "X": (OrderCancelMessage, 23, ("Q", "I")),
    "D": (OrderDeleteMessage, 19, ("Q",)),
    "U": (OrderReplaceMessage, 35, ("Q", "Q", "I", "I")),
    "P": (TradeMessage, 44, ("Q", "c", "I", "8s", "I", "Q")),
    "Q": (CrossTradeMessage, 40, ("Q", "8s", "I", "Q", "c")),
    "B": (BrokenTradeMessage, 19, ("Q",)),
    "I": (NOIIMessage, 50, ("Q", "Q", "c", "8s", "I", "I", "I", "c", "c")),
    "N": (RPIIMessage, 20, ("8s", "c")),
    "J": (LULDAuctionCollarMessage, 35, ("8s", "I", "I", "I", "I")),
}


def _read_fields(data: bytes, codes: tuple[str, ...]) -> list:
    values: list = []
    offset = 0
    for code in codes:
        if code == "c":
            values.append(chr(data[offset]))
            offset += 1
        elif code == "T":
            values.append(int.from_bytes(data[offset : offset + 6], "big"))
            offset += 6
        elif code.endswith("s"):
            length = int(code[:-1])
            values.append(data[offset : offset + length].decode("latin-1"))
            offset += length
        else:
            values.append(struct.unpack_from(">" + code, data, offset)[0])
            offset += struct.calcsize(">" + code)
    return values


def parse_message(buffer: bytes) -> Message:
    """Decode one ITCH message; raise ValueError if it is empty or has the wrong size."""
    data = bytes(buffer)
    if not data:
        raise ValueError("ITCH message is empty")
    kind = chr(data[0])
    layout = _LAYOUTS.get(kind)
    if layout is None:
        return UnknownMessage(kind)
    cls, size, codes = layout
    if len(data) != size:
        raise ValueError(
            f"Invalid size of the ITCH message type '{kind}': {len(data)}, expected {size}"
        )
    return cls(*_read_fields(data, _HEADER_CODES + codes))


class ITCHHandler:
    """Splits a stream of length-prefixed ITCH messages and dispatches each one.

    Subclasses override :meth:`on_message`; returning False from it stops processing.
    """

    def __init__(self) -> None:
        self._pending = bytearray()

    def on_message(self, message: Message) -> bool:
        return True

    def process_message(self, buffer: bytes) -> bool:
        """Decode a single message and hand it to :meth:`on_message`."""
        return bool(self.on_message(parse_message(buffer)))

    def process(self, buffer: bytes) -> bool:
        """Feed a chunk of the stream; incomplete messages are kept for the next chunk.

        Returns False as soon as a handler asks to stop.
        """
        self._pending += buffer
        while len(self._pending) >= 2:
            size = int.from_bytes(self._pending[:2], "big")
            end = 2 + size
            if len(self._pending) < end:
                break
            frame = bytes(self._pending[2:end])
            del self._pending[:end]
            if size and not self.process_message(frame):
                return False
        return True

    def reset(self) -> None:
        """Drop any partially received message."""
        self._pending.clear()