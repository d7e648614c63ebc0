"""
Unit tests for ReconnectBackoff.
"""

import pytest

from chatrelay.irc.backoff import ReconnectBackoff


def test_default_sequence_doubles_to_cap():
    backoff = ReconnectBackoff()
    assert [backoff.next_delay() for _ in range(8)] == [1, 2, 4, 8, 16, 30, 30, 30]


def test_reset_returns_to_floor():
    backoff = ReconnectBackoff()
    for _ in range(4):
        backoff.next_delay()
    backoff.reset()
    assert backoff.current_delay == 1
    assert backoff.next_delay() == 1


def test_custom_parameters():
    backoff = ReconnectBackoff(base_delay=0.5, max_delay=2, multiplier=3)
    assert [backoff.next_delay() for _ in range(3)] == [0.5, 1.5, 2]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"base_delay": 0},
        {"base_delay": 5, "max_delay": 1},
        {"multiplier": 0.5},
    ],
)
def test_invalid_parameters_rejected(kwargs):
    with pytest.raises(ValueError):
        ReconnectBackoff(**kwargs)
