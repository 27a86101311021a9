# Mock classes for testing
"""Mock exchange services for testing."""

from .exchange_mock import FakeWebSocket, MockAccountProvider, ScriptedStream
from .waiting import wait_until

__all__ = [
    "MockAccountProvider",
    "ScriptedStream",
    "FakeWebSocket",
    "wait_until",
]
