"""
Reducer 輔助模組。

Store 把 reducer 當作黑盒子：reducer(state, action) -> new_state。
這裡提供以 action 類型分派的 reducer 建構函數，以及組合多個子 reducer 的方法。
"""
from typing import Any, Callable, Dict, Mapping, Union

from immutables import Map

from .actions import Action
from .types import Reducer, S


def create_reducer(initial_state: S, *handlers) -> Reducer:
    """
    以 action.type 分派的 reducer。

    state 為 None（Store 還沒有狀態時）會改用 initial_state；找不到對應
    處理函式的 action 原樣回傳同一個 state 物件，讓 combine_reducers 能以 is
    判斷「沒有變化」。

    Args:
        initial_state: Store 沒有狀態時使用的值。
        *handlers: on() 回傳的映射，或 (action_type, handler) 元組；
            後面出現的同名 type 會覆蓋前面的。

    Returns:
        reducer(state, action) -> new_state，並帶有 initial_state 與 handlers 屬性。
    """
    action_handlers: Dict[str, Reducer] = {}
    for handler in handlers:
        if isinstance(handler, tuple) and len(handler) == 2:
            handler = dict([handler])
        action_handlers.update(handler)

    def reducer(state: S = None, action: Action = None) -> S:
        if state is None:
            state = initial_state
        if action is None:
            return state
        handle = action_handlers.get(action.type)
        return handle(state, action) if handle else state

    reducer.initial_state = initial_state
    reducer.handlers = action_handlers
    return reducer


def on(action: Union[str, Callable[..., Action]], handler: Reducer) -> Dict[str, Reducer]:
    """
    把 handler 綁定到一個 action type，供 create_reducer 使用。

    action 可以是 create_action 產生的 creator（取其 type 屬性），也可以直接是 type 字串。
    """
    action_type = getattr(action, "type", None) if callable(action) else None
    if action_type is None:
        action_type = str(action)
    return {action_type: handler}


def combine_reducers(reducers: Dict[str, Reducer]) -> Reducer:
    """
    把多個子 reducer 組合成一個處理映射狀態的 reducer。

    每個鍵對應的子狀態交給同名的 reducer 處理；如果沒有任何子狀態改變
    （以 is 判斷），會回傳原本的狀態物件。

    Args:
        reducers: 鍵名到 reducer 的映射字典。

    Returns:
        組合後的 reducer，產生 immutables.Map 狀態。
    """
    reducers = dict(reducers)

    def reducer(state: Mapping[str, Any] = None, action: Action = None) -> Mapping[str, Any]:
        previous = state if state is not None else Map()
        changed = state is None

        with Map(previous).mutate() as next_state:
            for key, child in reducers.items():
                prev_substate = previous.get(key)
                next_substate = child(prev_substate, action)
                if key not in previous or next_substate is not prev_substate:
                    next_state[key] = next_substate
                    changed = True
            result = next_state.finish()

        return result if changed else previous

    reducer.reducers = reducers
    return reducer
