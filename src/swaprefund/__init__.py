"""Swap refund bot - refunds expired atomic swaps on Kava and Binance Chain."""

__version__ = "0.1.0"
