import logging
import threading
from typing import Any, Generic, Mapping, Optional, Tuple, Union

from .actions import Action, init_store
from .config import StoreConfig
from .errors import StoreError
from .immutable_utils import freeze
from .subscribers import SubscriberRegistry, SubscriptionBox
from .types import Reducer, S, TransformBuilder

logger = logging.getLogger(__name__)


class Store(Generic[S]):
    """
    狀態容器，管理應用的唯一狀態並通知訂閱者狀態變更。

    狀態只會經由 reducer 回應 dispatch 的 action 而被取代，不會原地修改。
    訂閱者以弱引用保存，Store 不會延長它們的生命週期。
    """

    registry_class = SubscriberRegistry

    def __init__(
        self,
        reducer: Reducer,
        state: Optional[S] = None,
        config: Union[StoreConfig, Mapping[str, Any], None] = None,
    ):
        """
        初始化 Store。

        Args:
            reducer: 純函數 reducer(state, action) -> new_state。
            state: 初始狀態；為 None 時會分發 init_store()，由 reducer 提供初始值。
            config: StoreConfig 或可以轉成 StoreConfig 的映射。
        """
        # 接受映射形式的設定
        if config is None:
            config = StoreConfig()
        elif not isinstance(config, StoreConfig):
            config = StoreConfig(**config)
        self.config = config

        self._reducer = reducer
        # 同一執行緒內允許重入 dispatch，不同執行緒之間則互斥
        self._lock = threading.RLock()
        # 只在 reducer 執行期間為 True
        self._is_reducing = False
        # 訂閱者登記表，Store 是它唯一的持有者
        self._registry = self.registry_class(
            automatically_skips_repeats=config.automatically_skips_repeats
        )

        if state is None:
            self._state = None
            self.dispatch(init_store())
        else:
            self._state = freeze(state) if config.freeze_state else state

    @property
    def state(self) -> S:
        """
        獲取當前狀態的快照。

        Returns:
            當前狀態。
        """
        return self._state

    @property
    def subscriptions(self) -> Tuple[SubscriptionBox[S], ...]:
        """目前登記中的 SubscriptionBox，依訂閱順序排列。"""
        return tuple(self._registry)

    def dispatch(self, action: Action) -> Action:
        """
        分發一個動作：以 reducer 計算新狀態，然後通知所有訂閱者。

        訂閱者在通知回呼中再次 dispatch 是允許的：內層的 dispatch 會完整跑完
        自己的一輪通知，外層再以外層的狀態繼續通知剩下的訂閱者。

        Args:
            action: 要分發的 Action。

        Returns:
            傳入的 Action。

        Raises:
            StoreError: 在 reducer 執行期間 dispatch。
        """
        with self._lock:
            if self._is_reducing:
                raise StoreError(
                    "不能在 reducer 執行期間分發 action",
                    operation="dispatch",
                    action_type=getattr(action, "type", repr(action)),
                )

            # reducer 拋出的錯誤直接向上傳遞，狀態保持不變
            self._is_reducing = True
            try:
                new_state = self._reducer(self._state, action)
            finally:
                self._is_reducing = False

            if self.config.freeze_state:
                new_state = freeze(new_state)

            self._state = new_state
            logger.debug("dispatch %r", action)

            # 每一輪通知只使用這次 dispatch 計算出的狀態
            self._registry.notify_all(new_state)
        return action

    def subscribe(self, subscriber: Any, transform: Optional[TransformBuilder] = None) -> None:
        """
        登記訂閱者，並立即以目前狀態通知它一次。

        同一個訂閱者重複訂閱時，新的轉換會取代舊的，不會產生第二條通知流。

        Args:
            subscriber: 具有 on_new_state(value) 方法的物件。
            transform: 接收 Subscription 並回傳轉換後 Subscription 的函數，例如
                ``lambda s: s.select(lambda state: state.count).skip_repeats()``。

        Raises:
            SubscriptionError: 訂閱者不符合要求。
        """
        with self._lock:
            self._registry.subscribe(subscriber, self._state, transform)

    def unsubscribe(self, subscriber: Any) -> None:
        """
        取消訂閱；對未登記的訂閱者不做任何事。

        Args:
            subscriber: 先前登記的訂閱者。
        """
        with self._lock:
            self._registry.unsubscribe(subscriber)

    def purge_subscribers(self) -> int:
        """
        清除已被回收的訂閱者，不發出任何通知。

        Returns:
            被移除的訂閱數量。
        """
        with self._lock:
            return self._registry.purge()


def create_store(reducer: Reducer, state: Any = None, **config: Any) -> Store:
    """
    創建一個新的 Store 實例。

    Args:
        reducer: reducer 函數。
        state: 可選的初始狀態。
        **config: StoreConfig 的欄位。

    Returns:
        Store: 新創建的 Store 實例。
    """
    return Store(reducer, state, StoreConfig(**config))
