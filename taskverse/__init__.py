"""TaskVerse: task tracking with wallet-backed on-chain verification."""

__version__ = "0.1.0"
