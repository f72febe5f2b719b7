"""Contract trust analysis with paid on-chain recording."""

__version__ = "1.0.0"
