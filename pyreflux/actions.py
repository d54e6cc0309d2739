"""
Action 定義模組。

Actions 是描述狀態變更意圖的不可變對象，除了內容之外沒有任何身分。
"""
from typing import Any, Callable, Dict, Generic, Optional, Union

from immutables import Map

from .types import P


class Action(Generic[P]):
    """
    交給 reducer 的意圖描述。

    Action 建立後不能修改；兩個 Action 只要 type 與 payload 相等就視為相同，
    Store 不會依據它的身分做任何事。

    Attributes:
        type: 用來讓 reducer 分派的標籤，例如 "[Counter] Add"。
        payload: 附帶的資料；沒有資料時為 None。
    """
    __slots__ = ('type', 'payload')

    def __init__(self, type: str, payload: Optional[P] = None):
        object.__setattr__(self, 'type', type)
        object.__setattr__(self, 'payload', payload)

    def __setattr__(self, name, value):
        raise AttributeError(f"{self!r} 是不可變的，不能設定 '{name}'")

    def __delattr__(self, name):
        raise AttributeError(f"{self!r} 是不可變的，不能刪除 '{name}'")

    def __eq__(self, other):
        if not isinstance(other, Action):
            return NotImplemented
        return (self.type, self.payload) == (other.type, other.payload)

    def __hash__(self):
        # 不可雜湊的 payload 只以 type 計算
        try:
            return hash((self.type, self.payload))
        except TypeError:
            return hash(self.type)

    def __repr__(self):
        if self.payload is None:
            return f"Action({self.type!r})"
        return f"Action({self.type!r}, {self.payload!r})"


def _process_payload(payload: Any) -> Any:
    # dict 負載轉為不可變的 Map
    if isinstance(payload, dict):
        return Map(payload)
    return payload


def create_action(action_type: str, prepare_fn: Optional[Callable[..., Any]] = None) -> Callable[..., Action[Any]]:
    """
    產生一個 action creator。

    呼叫 creator 時的參數決定 payload：有 prepare_fn 時取其回傳值；
    只有一個位置參數時就是該值；多個參數則收集成以位置與名稱為鍵的映射。
    dict 形式的 payload 會被轉成 immutables.Map。

    Args:
        action_type: 產生的 Action 的 type。
        prepare_fn: 把呼叫參數整理成 payload 的函數。

    Returns:
        產生 Action 的函數，其 type 屬性等於 action_type，可直接交給 on()。

    範例:
        >>> increment = create_action("[Counter] Increment")
        >>> increment()
        Action('[Counter] Increment')
        >>> add = create_action("[Counter] Add", lambda amount: amount)
        >>> add(5)
        Action('[Counter] Add', 5)
    """
    def action_creator(*args: Any, **kwargs: Any) -> Action[Any]:
        if prepare_fn:
            return Action(action_type, _process_payload(prepare_fn(*args, **kwargs)))
        if len(args) == 1 and not kwargs:
            return Action(action_type, _process_payload(args[0]))
        if args or kwargs:
            payload: Dict[Union[int, str], Any] = dict(zip(range(len(args)), args))
            payload.update(kwargs)
            return Action(action_type, _process_payload(payload))
        # 無參數，無負載
        return Action(action_type)

    action_creator.type = action_type  # type: ignore
    return action_creator


# Store 沒有初始狀態時分發，讓 reducer 提供初始值
init_store = create_action("[Root] Init Store")
