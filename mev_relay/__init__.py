"""Block monitoring, missed-block logging and Ethereum helpers for an MEV relay."""

__version__ = "0.1.0"