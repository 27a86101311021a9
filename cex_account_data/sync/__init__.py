# Sync module - account mirror and the worker keeping it current
from .bootstrap import AccountDataProvider, SessionBootstrapper
from .completed_orders import CompletedOrderCache
from .context import AccountContext
from .dispatcher import EventDispatcher
from .keepalive import ListenKeyKeepalive
from .store import AccountStateStore
from .watchdog import OrderTracker, StaleOrderWatchdog, TrackedOrder, TrackState
from .worker import AccountDataWorker, WorkerState

__all__ = [
    "AccountDataProvider",
    "SessionBootstrapper",
    "CompletedOrderCache",
    "AccountContext",
    "EventDispatcher",
    "ListenKeyKeepalive",
    "AccountStateStore",
    "OrderTracker",
    "StaleOrderWatchdog",
    "TrackedOrder",
    "TrackState",
    "AccountDataWorker",
    "WorkerState",
]
