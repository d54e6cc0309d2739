"""Store 訂閱與分發流程的測試。"""
import gc
import threading
import weakref

import pytest
from immutables import Map
from pydantic import ValidationError

from pyreflux import (
    Action, Store, StoreConfig, StoreError, SubscriberRegistry, SubscriptionBox,
    create_store,
)

from support import (
    AppState, DispatchingSubscriber, RecordingSubscriber, app_reducer, set_other,
    set_value,
)


def live_subscribers(store):
    return [box.subscriber for box in store.subscriptions if box.subscriber is not None]


def test_init_action_provides_initial_state(store):
    assert store.state == AppState()


def test_explicit_initial_state_skips_init_action():
    seen = []

    def reducer(state, action):
        seen.append(action)
        return state

    store = Store(reducer, AppState(test_value=1))

    assert seen == []
    assert store.state.test_value == 1


def test_does_not_strongly_capture_subscriber(store):
    subscriber = RecordingSubscriber()

    store.subscribe(subscriber)
    assert len(live_subscribers(store)) == 1

    del subscriber
    gc.collect()

    assert len(live_subscribers(store)) == 0


def test_box_and_store_are_released():
    box_refs = []

    class TracingBox(SubscriptionBox):
        def __init__(self, *args):
            super().__init__(*args)
            box_refs.append(weakref.ref(self))

    class TracingRegistry(SubscriberRegistry):
        box_class = TracingBox

    class TracingStore(Store):
        registry_class = TracingRegistry

    store = TracingStore(app_reducer)
    subscriber = RecordingSubscriber()

    store.subscribe(subscriber)
    assert len(subscriber.received_states) == 1

    store.dispatch(Action("tracer"))
    assert len(subscriber.received_states) == 2

    store.unsubscribe(subscriber)
    assert store.subscriptions == ()

    store.dispatch(Action("tracer"))
    assert len(subscriber.received_states) == 2

    store_ref = weakref.ref(store)
    del store
    gc.collect()

    assert store_ref() is None
    assert all(ref() is None for ref in box_refs)


def test_removes_dead_subscribers(store):
    subscriber1 = RecordingSubscriber()
    subscriber2 = RecordingSubscriber()

    store.subscribe(subscriber1)
    store.subscribe(subscriber2)
    store.dispatch(set_value(3))
    assert len(store.subscriptions) == 2
    assert subscriber1.values[-1] == 3
    assert subscriber2.values[-1] == 3

    del subscriber1
    gc.collect()
    store.dispatch(set_value(5))
    assert len(store.subscriptions) == 1
    assert subscriber2.values[-1] == 5

    del subscriber2
    gc.collect()
    store.dispatch(set_value(8))
    assert len(store.subscriptions) == 0


def test_purge_subscribers(store):
    subscriber = RecordingSubscriber()
    store.subscribe(subscriber)

    del subscriber
    gc.collect()

    assert store.purge_subscribers() == 1
    assert store.subscriptions == ()


def test_duplicate_subscription_replaces_previous(store, subscriber):
    store.subscribe(subscriber)
    store.subscribe(
        subscriber,
        lambda sub: sub.skip_repeats(lambda old, new: old.test_value == new.test_value),
    )

    # 每次訂閱各有一次初始通知
    assert len(subscriber.received_states) == 2

    for _ in range(4):
        store.dispatch(set_value(3))

    assert len(subscriber.received_states) == 3
    assert len(store.subscriptions) == 1


def test_dispatches_initial_value_upon_subscription(store, subscriber):
    store.dispatch(set_value(7))

    store.subscribe(subscriber)

    assert subscriber.values == [7]


def test_subscriber_sees_latest_state(store, subscriber):
    store.subscribe(subscriber)
    store.dispatch(set_value(3))

    assert subscriber.values[-1] == 3


def test_allows_dispatch_within_observer(store):
    subscriber = DispatchingSubscriber(store)

    store.subscribe(subscriber)
    store.dispatch(set_value(2))

    assert store.state.test_value == 5


def test_reentrant_dispatch_ordering(store):
    dispatcher = DispatchingSubscriber(store)
    bystander = RecordingSubscriber()
    store.subscribe(dispatcher)
    store.subscribe(bystander)

    store.dispatch(set_value(2))

    # 內層 dispatch 先完整通知一輪，外層再以外層的狀態繼續
    assert dispatcher.values == [None, 2, 5]
    assert bystander.values == [None, 5, 2]
    assert store.state.test_value == 5


def test_does_not_dispatch_to_unsubscribed(store, subscriber):
    store.dispatch(set_value(5))
    store.subscribe(subscriber)
    store.dispatch(set_value(10))

    store.unsubscribe(subscriber)
    # 沒有訂閱期間的值不會補送
    store.dispatch(set_value(15))
    store.dispatch(set_value(25))

    store.subscribe(subscriber)
    store.dispatch(set_value(20))

    assert subscriber.values == [5, 10, 25, 20]


def test_ignores_identical_subscribers(store, subscriber):
    store.subscribe(subscriber)
    store.subscribe(subscriber)

    assert len(store.subscriptions) == 1


def test_ignores_identical_substate_subscribers(store, subscriber):
    store.subscribe(subscriber, lambda sub: sub)
    store.subscribe(subscriber, lambda sub: sub)

    assert len(store.subscriptions) == 1


def test_substate_subscription(store, subscriber):
    store.subscribe(
        subscriber, lambda sub: sub.select(lambda state: state.test_value).skip_repeats()
    )

    store.dispatch(set_value(1))
    store.dispatch(set_other("unrelated"))
    store.dispatch(set_value(1))
    store.dispatch(set_value(2))

    assert subscriber.received_states == [None, 1, 2]


def test_reducer_failure_propagates(subscriber):
    def broken(state, action):
        raise RuntimeError("reducer failed")

    store = Store(broken, AppState(test_value=1))
    store.subscribe(subscriber)

    with pytest.raises(RuntimeError):
        store.dispatch(set_value(2))

    assert store.state.test_value == 1
    assert subscriber.values == [1]


def test_dispatch_from_reducer_is_rejected():
    holder = {}

    def reducer(state, action):
        if action.type == "nested":
            holder["store"].dispatch(set_value(1))
        return app_reducer(state, action)

    store = Store(reducer, AppState())
    holder["store"] = store

    with pytest.raises(StoreError) as exc_info:
        store.dispatch(Action("nested"))
    assert exc_info.value.operation == "dispatch"

    store.dispatch(set_value(3))
    assert store.state.test_value == 3


def test_dispatch_returns_action(store):
    action = set_value(4)

    assert store.dispatch(action) is action


def test_automatically_skips_repeats_config(subscriber):
    store = Store(app_reducer, config={"automatically_skips_repeats": True})
    store.subscribe(subscriber)

    store.dispatch(set_value(3))
    store.dispatch(set_value(3))
    store.dispatch(set_value(3))

    assert subscriber.values == [None, 3]


def test_freeze_state_config():
    def reducer(state, action):
        if state is None:
            return {"items": []}
        return {"items": list(state["items"]) + [action.payload]}

    store = create_store(reducer, freeze_state=True)
    store.dispatch(Action("add", {"id": 1}))

    assert isinstance(store.state, Map)
    assert store.state["items"] == (Map({"id": 1}),)


def test_config_rejects_unknown_keys():
    with pytest.raises(ValidationError):
        Store(app_reducer, config={"unknown_option": True})


def test_config_is_frozen():
    config = StoreConfig()

    with pytest.raises(ValidationError):
        config.freeze_state = True


def test_dispatch_is_serialised_across_threads(subscriber):
    def counter(state, action):
        return state.model_copy(update={"test_value": state.test_value + 1})

    store = Store(counter, AppState(test_value=0))
    store.subscribe(subscriber)

    def worker():
        for _ in range(100):
            store.dispatch(Action("increment"))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.state.test_value == 400
    assert subscriber.values == list(range(401))


def test_dead_box_from_outer_pass_is_skipped_by_nested_dispatch(store):
    class Watcher(RecordingSubscriber):
        def __init__(self):
            super().__init__()
            self.active_during_nested = None

        def on_new_state(self, value):
            super().on_new_state(value)
            if value.test_value == 5:
                self.active_during_nested = [box.active for box in store.subscriptions]

    doomed = RecordingSubscriber()
    dispatcher = DispatchingSubscriber(store)
    watcher = Watcher()
    store.subscribe(doomed)
    store.subscribe(dispatcher)
    store.subscribe(watcher)

    del doomed
    gc.collect()
    store.dispatch(set_value(2))

    # 外層先發現已回收的訂閱者，內層 dispatch 不再把它當作存在
    assert watcher.active_during_nested == [False, True, True]
    assert watcher.values == [None, 5, 2]
    assert len(store.subscriptions) == 2


def test_failed_subscribe_leaves_store_usable(store, subscriber):
    def broken(state):
        raise ValueError("boom")

    store.subscribe(subscriber)
    with pytest.raises(ValueError):
        store.subscribe(subscriber, lambda sub: sub.select(broken))

    store.dispatch(set_value(1))

    assert subscriber.values == [None, 1]
    assert len(store.subscriptions) == 1
