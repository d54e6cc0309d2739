"""
訂閱者登記模組。

SubscriptionBox 把一個外部訂閱者（弱引用）綁定到一條轉換管線；
SubscriberRegistry 依訂閱順序保存所有 box，並負責新增、取代、移除
以及通知。Registry 是 box 唯一的強引用持有者。
"""
import logging
import weakref
from typing import Any, Generic, Iterator, List, Optional, Tuple

from .errors import SubscriptionError
from .subscription import NOTHING, Subscription
from .types import S, TransformBuilder

logger = logging.getLogger(__name__)


class SubscriptionBox(Generic[S]):
    """
    單一訂閱者的內部紀錄。

    box 建立後不再改變；同一訂閱者重新訂閱時會建立新的 box 取代舊的。
    """

    def __init__(
        self,
        original_subscription: Subscription[S],
        transformed_subscription: Optional[Subscription[Any]],
        subscriber: Any,
    ):
        self.original_subscription = original_subscription
        self.transformed_subscription = transformed_subscription
        self._subscriber_ref = weakref.ref(subscriber)
        self.active = True

    @property
    def subscriber(self) -> Optional[Any]:
        """綁定的訂閱者；若已被回收則為 None。"""
        return self._subscriber_ref()

    @property
    def subscription(self) -> Subscription[Any]:
        """實際用來通知的管線。"""
        if self.transformed_subscription is not None:
            return self.transformed_subscription
        return self.original_subscription

    def is_identity_subscriber(self, subscriber: Any) -> bool:
        """判斷這個 box 是否綁定在同一個訂閱者實例上（以 is 比較）。"""
        return self.active and self._subscriber_ref() is subscriber

    def notify(self, state: S) -> bool:
        """
        以完整狀態驅動管線，必要時通知訂閱者。

        Args:
            state: 新的完整狀態。

        Returns:
            訂閱者仍然存活時回傳 True；回傳 False 代表應該由 registry 移除這個 box。
        """
        if self._subscriber_ref() is None:
            return False

        value = self.subscription.apply(state)

        # 管線裡的 selector 可能讓最後一個強引用消失
        subscriber = self._subscriber_ref()
        if subscriber is None:
            return False
        if value is not NOTHING:
            subscriber.on_new_state(value)
        return True

    def dispose(self) -> None:
        """停用並釋放管線。"""
        self.active = False
        self.original_subscription.dispose()
        if self.transformed_subscription is not None:
            self.transformed_subscription.dispose()

    def __repr__(self) -> str:
        subscriber = self._subscriber_ref()
        name = type(subscriber).__name__ if subscriber is not None else "<dead>"
        return f"SubscriptionBox(subscriber={name}, active={self.active})"


class SubscriberRegistry(Generic[S]):
    """
    依訂閱順序排列的 SubscriptionBox 集合。

    同一個訂閱者實例最多只有一個存活的 box。
    """

    box_class = SubscriptionBox

    def __init__(self, automatically_skips_repeats: bool = False):
        """
        Args:
            automatically_skips_repeats: 是否在每條管線最後自動加上 skip_repeats()。
        """
        self.automatically_skips_repeats = automatically_skips_repeats
        self._boxes: List[SubscriptionBox[S]] = []

    def __len__(self) -> int:
        return len(self._boxes)

    def __iter__(self) -> Iterator[SubscriptionBox[S]]:
        return iter(tuple(self._boxes))

    @property
    def subscribers(self) -> Tuple[Any, ...]:
        """仍然存活的訂閱者。"""
        return tuple(
            subscriber
            for subscriber in (box.subscriber for box in self._boxes if box.active)
            if subscriber is not None
        )

    def _find(self, subscriber: Any) -> Optional[SubscriptionBox[S]]:
        for box in self._boxes:
            if box.is_identity_subscriber(subscriber):
                return box
        return None

    def _remove(self, box: SubscriptionBox[S]) -> None:
        box.dispose()
        if box in self._boxes:
            self._boxes.remove(box)

    def subscribe(self, subscriber: Any, state: S, transform: Optional[TransformBuilder] = None) -> SubscriptionBox[S]:
        """
        登記訂閱者，並立刻以目前狀態通知一次。

        若同一個訂閱者已經登記過，舊的 box 會先被移除，新的轉換取而代之。

        Args:
            subscriber: 具有 on_new_state 方法、可被弱引用的物件。
            state: Store 目前的狀態，作為初始通知。
            transform: 接收原始 Subscription 並回傳轉換後 Subscription 的函數。

        Returns:
            新建立的 SubscriptionBox。

        Raises:
            SubscriptionError: 訂閱者沒有 on_new_state 或無法被弱引用。
        """
        if not callable(getattr(subscriber, "on_new_state", None)):
            raise SubscriptionError(
                "訂閱者必須提供 on_new_state(value) 方法", subscriber
            )
        try:
            weakref.ref(subscriber)
        except TypeError as err:
            raise SubscriptionError(
                "訂閱者必須可以被弱引用", subscriber
            ) from err

        original = Subscription()
        transformed = transform(original) if transform is not None else None
        if self.automatically_skips_repeats:
            transformed = (transformed if transformed is not None else original).skip_repeats()

        box = self.box_class(original, transformed, subscriber)

        # 先跑一次管線；失敗時登記表維持原狀，舊的訂閱也保留
        try:
            value = box.subscription.apply(state)
        except Exception:
            box.dispose()
            raise

        existing = self._find(subscriber)
        if existing is not None:
            logger.debug("取代既有的訂閱: %r", existing)
            self._remove(existing)

        self._boxes.append(box)
        logger.debug("新增訂閱: %r (共 %d 個)", box, len(self._boxes))

        if value is not NOTHING:
            subscriber.on_new_state(value)
        return box

    def unsubscribe(self, subscriber: Any) -> None:
        """移除訂閱者；未登記過則不做任何事。"""
        box = self._find(subscriber)
        if box is not None:
            self._remove(box)
            logger.debug("取消訂閱: %r (剩 %d 個)", box, len(self._boxes))

    def notify_all(self, state: S) -> None:
        """
        依訂閱順序通知所有存活的訂閱者。

        迭代的是通知開始時的快照：途中被取消訂閱的 box 不會再收到通知，
        途中新增的 box 也不屬於這一輪。已死亡的訂閱者會立刻停用，
        並在這一輪結束後才從序列中移除。
        """
        dead: List[SubscriptionBox[S]] = []
        try:
            for box in tuple(self._boxes):
                if not box.active:
                    continue
                if not box.notify(state):
                    box.active = False
                    dead.append(box)
        finally:
            for box in dead:
                self._remove(box)
            if dead:
                logger.debug("移除 %d 個已回收的訂閱者", len(dead))

    def purge(self) -> int:
        """
        不發出通知，只清除已回收或已停用的 box。

        Returns:
            被移除的 box 數量。
        """
        stale = [box for box in self._boxes if not box.active or box.subscriber is None]
        for box in stale:
            self._remove(box)
        return len(stale)
