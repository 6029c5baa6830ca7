[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tradecore"
version = "0.1.0"
description = "Order matching engine with price-level order books, a NASDAQ ITCH message parser and a Redis storage helper"
requires-python = ">=3.10"
keywords = ["trading", "matching engine", "order book", "itch", "nasdaq", "market data", "redis"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "sortedcontainers",
    "redis",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["tradecore"]

[tool.pytest.ini_options]
addopts = "-ra"
