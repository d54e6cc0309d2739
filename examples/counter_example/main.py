from typing import Optional

from pydantic import BaseModel, ConfigDict

from pyreflux import Store, create_action, create_reducer, on


# ====== Model Definition ======
class CounterState(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int = 0
    label: Optional[str] = None


increment = create_action("[Counter] Increment")
increment_by = create_action("[Counter] Increment By", lambda amount: amount)
rename = create_action("[Counter] Rename", lambda label: label)

counter_reducer = create_reducer(
    CounterState(),
    on(increment, lambda state, action: state.model_copy(update={"count": state.count + 1})),
    on(increment_by, lambda state, action: state.model_copy(update={"count": state.count + action.payload})),
    on(rename, lambda state, action: state.model_copy(update={"label": action.payload})),
)


class CountPrinter:
    def on_new_state(self, count):
        print(f"計數變化: {count}")


class StatePrinter:
    def on_new_state(self, state):
        print(f"完整狀態: {state}")


if __name__ == "__main__":
    store = Store(counter_reducer)

    # 訂閱者必須由呼叫端持有，Store 只保存弱引用
    count_printer = CountPrinter()
    state_printer = StatePrinter()

    store.subscribe(
        count_printer,
        lambda sub: sub.select(lambda state: state.count).skip_repeats(),
    )
    store.subscribe(state_printer)

    print("\n==== 開始測試基本操作 ====")
    store.dispatch(increment())
    store.dispatch(increment_by(5))
    store.dispatch(rename("demo"))  # 計數沒有改變，count_printer 不會收到通知

    store.unsubscribe(state_printer)
    store.dispatch(increment())

    print("\n==== 最終狀態 ====")
    print(store.state)
