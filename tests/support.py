"""測試共用的狀態、action 與訂閱者。"""
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict

from pyreflux import create_action, create_reducer, on


class AppState(BaseModel):
    model_config = ConfigDict(frozen=True)

    test_value: Optional[int] = None
    other_state: Optional[str] = None


set_value = create_action("[Test] Set Value")
set_other = create_action("[Test] Set Other")


def _set_value(state: AppState, action) -> AppState:
    return state.model_copy(update={"test_value": action.payload})


def _set_other(state: AppState, action) -> AppState:
    return state.model_copy(update={"other_state": action.payload})


app_reducer = create_reducer(
    AppState(),
    on(set_value, _set_value),
    on(set_other, _set_other),
)


class RecordingSubscriber:
    """記錄收到的每一個值。"""

    def __init__(self):
        self.received_states: List[Any] = []

    def on_new_state(self, value: Any) -> None:
        self.received_states.append(value)

    @property
    def values(self) -> List[Optional[int]]:
        return [state.test_value for state in self.received_states]


class DispatchingSubscriber(RecordingSubscriber):
    """收到 test_value == 2 時再分發一次 set_value(5)。"""

    def __init__(self, store):
        super().__init__()
        self.store = store

    def on_new_state(self, value: Any) -> None:
        super().on_new_state(value)
        if value.test_value == 2:
            self.store.dispatch(set_value(5))
