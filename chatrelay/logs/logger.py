"""Structured event logger used by the IRC and relay layers.

Every call names an event as ``(domain, action)`` plus keyword context. Two
keys are lifted into the line prefix: ``user`` (the relay identity) and
``channel``. Output is one line per event:

    concise:  [bob#somechannel          ] 🔄 Reconnecting in 4s
    DEBUG:    irc_reconnect_scheduled          [bob ...] 🔄 Reconnecting in 4s (delay=4)
"""

from __future__ import annotations

import logging
import os
import sys

import colorlog

from .event_catalog import render_event

EVENT_NAME_WIDTH = 32
PREFIX_WIDTH = 24
CHAT_LINE = ("consumer", "chat_line")

_LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "purple",
}


def debug_enabled() -> bool:
    return os.environ.get("DEBUG", "false").lower() in ("true", "1", "yes")


def _event_column(name: str) -> str:
    if len(name) <= EVENT_NAME_WIDTH:
        return name.ljust(EVENT_NAME_WIDTH)
    return name[: EVENT_NAME_WIDTH - 1] + "…"


def _prefix(user: object, channel: object) -> str:
    label = user if isinstance(user, str) and user else "relay"
    if isinstance(channel, str) and channel:
        label = f"{label}#{channel}"
    return f"[{label.ljust(PREFIX_WIDTH)[:PREFIX_WIDTH]}]"


class RelayLogger:
    """Thin wrapper over a named stdlib logger with its own console handler."""

    def __init__(self, name: str = "chatrelay") -> None:
        self.logger = logging.getLogger(name)
        self.logger.handlers.clear()
        self.logger.setLevel(logging.DEBUG if debug_enabled() else logging.INFO)
        # Records stay out of the root handler installed by LoggerConfigurator.
        self.logger.propagate = False

        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(
            colorlog.ColoredFormatter(
                "%(log_color)s%(levelname)-8s%(reset)s %(message)s",
                log_colors=_LEVEL_COLORS,
                stream=sys.stdout,
            )
        )
        self.logger.addHandler(console)

    def log_event(
        self,
        domain: str,
        action: str,
        level: int = logging.INFO,
        human: str | None = None,
        *,
        exc_info: bool = False,
        **context: object,
    ) -> None:
        """Log one event.

        Args:
            domain: Event family, e.g. ``"irc"`` or ``"consumer"``.
            action: Event name inside the family.
            level: stdlib logging level.
            human: Explicit text; otherwise the catalog template is used, and
                failing that a text derived from the event name.
            exc_info: Attach the active exception's traceback.
            **context: Template fields and extra context. ``user`` and
                ``channel`` go into the prefix instead of the context list.
        """
        text = human if human is not None else render_event(domain, action, context)
        if text is None:
            text = f"{domain.replace('_', ' ')}: {action.replace('_', ' ')}"
            context.setdefault("derived", True)
        user = context.pop("user", None)
        channel = context.pop("channel", None)
        if (domain, action) == CHAT_LINE:
            text = f"💬 #{channel} {text}" if isinstance(channel, str) else f"💬 {text}"

        line = f"{_prefix(user, channel)} {text}"
        if debug_enabled():
            details = ", ".join(f"{k}={v}" for k, v in context.items())
            line = f"{_event_column(f'{domain}_{action}'.lower())} {line}"
            if details:
                line = f"{line} ({details})"
        self.logger.log(level, line, exc_info=exc_info)


logger = RelayLogger()
