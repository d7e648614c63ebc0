"""Shared Twitch chat relay: one upstream connection, many local consumers."""

__version__ = "1.0.0"
