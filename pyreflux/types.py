"""
PyReflux 共用的類型定義。
"""
from typing import Any, Callable, TypeVar

from typing_extensions import Protocol, runtime_checkable

S = TypeVar("S")  # 狀態類型
T = TypeVar("T")  # 衍生值類型
U = TypeVar("U")
P = TypeVar("P")  # 負載類型

# (state, action) -> new_state
Reducer = Callable[[Any, Any], Any]

# 從完整狀態選出子狀態
StateSelector = Callable[[S], T]

# (previous, candidate) -> 是否視為重複
Comparer = Callable[[T, T], bool]

# Subscription -> Subscription，用於在訂閱時組合轉換管線
TransformBuilder = Callable[[Any], Any]


@runtime_checkable
class StoreSubscriber(Protocol):
    """可以接收狀態通知的訂閱者。"""

    def on_new_state(self, value: Any) -> None:
        ...
