"""
PyReflux：單向資料流的狀態容器，核心是訂閱者登記與通知管線。
"""

from .errors import PyRefluxError, StoreError, SubscriptionError
from .actions import Action, create_action, init_store
from .reducers import create_reducer, on, combine_reducers
from .subscription import Subscription, NOTHING
from .subscribers import SubscriptionBox, SubscriberRegistry
from .store import Store, create_store
from .config import StoreConfig
from .immutable_utils import freeze, thaw
from .types import StoreSubscriber

__version__ = "0.1.0"

# 匯出所有公開 API
__all__ = [
    # Errors
    "PyRefluxError", "StoreError", "SubscriptionError",

    # Actions
    "Action", "create_action", "init_store",

    # Reducers
    "create_reducer", "on", "combine_reducers",

    # Subscriptions
    "Subscription", "NOTHING", "SubscriptionBox", "SubscriberRegistry",
    "StoreSubscriber",

    # Store
    "Store", "create_store", "StoreConfig",

    # Immutable Utils
    "freeze", "thaw",
]
