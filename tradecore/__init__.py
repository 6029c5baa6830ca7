"""Order matching engine, order books, NASDAQ ITCH message parsing and a Redis storage helper."""

__version__ = "0.1.0"