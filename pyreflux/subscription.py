"""
訂閱轉換管線模組。

Subscription 把「完整狀態」的通知流收窄成訂閱者真正關心的衍生值流。
每一個步驟都是一個 reactivex 運算子，掛在同一個根 Subject 之後：

    >>> sub = Subscription().select(lambda s: s["count"]).skip_repeats()
    >>> sub.apply({"count": 1})
    1
    >>> sub.apply({"count": 1}) is NOTHING
    True

管線本身不知道 Store 的存在。
"""
import operator
from typing import Any, Callable, Generic, Optional

from reactivex import Observable, Subject
from reactivex import operators as ops
from reactivex.abc import DisposableBase

from .types import Comparer, S, StateSelector, T, U


class _Nothing:
    """表示管線這一次沒有發出任何值。"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOTHING"


NOTHING: Any = _Nothing()


class Subscription(Generic[T]):
    """
    可組合的狀態轉換管線。

    每次呼叫 select / skip_repeats / skip / only 都會回傳一個新的
    Subscription，與原本的管線共用同一個根 Subject。步驟由左至右執行，
    任何一步抑制了值，整條管線就不會發出。

    Attributes:
        root: 接收完整狀態的 Subject。
        source: 這條管線對應的 Observable。
    """

    def __init__(self, source: Optional[Observable] = None, root: Optional[Subject] = None):
        self.root = root if root is not None else Subject()
        self.source = source if source is not None else self.root
        self._disposable: Optional[DisposableBase] = None
        self._emitted: Any = NOTHING
        self._error: Optional[Exception] = None

    def _derive(self, operator_fn: Callable[[Observable], Observable]) -> "Subscription[Any]":
        return Subscription(self.source.pipe(operator_fn), self.root)

    def select(self, selector: StateSelector[T, U]) -> "Subscription[U]":
        """
        把值映射為子狀態，永遠會發出。

        Args:
            selector: 接收目前值並回傳衍生值的函數。

        Returns:
            新的 Subscription。
        """
        return self._derive(ops.map(selector))

    def skip_repeats(self, is_repeat: Optional[Comparer] = None) -> "Subscription[T]":
        """
        跳過與上一次發出值「相同」的候選值。

        只有在還沒發出過任何值，或 is_repeat(上一次發出值, 候選值) 為假時才會發出。

        Args:
            is_repeat: 自訂的相等判斷，預設使用 ==。

        Returns:
            新的 Subscription。
        """
        return self._derive(
            ops.distinct_until_changed(comparer=is_repeat or operator.eq)
        )

    def skip(self, when: Callable[[T], bool]) -> "Subscription[T]":
        """當 when(值) 為真時抑制這次發出。"""
        return self._derive(ops.filter(lambda value: not when(value)))

    def only(self, when: Callable[[T], bool]) -> "Subscription[T]":
        """只有 when(值) 為真時才發出。"""
        return self._derive(ops.filter(when))

    def _on_next(self, value: Any) -> None:
        self._emitted = value

    def _on_error(self, error: Exception) -> None:
        self._error = error

    def apply(self, state: S) -> Any:
        """
        將一個完整狀態推入管線。

        Args:
            state: 新的完整狀態。

        Returns:
            管線這次發出的衍生值；若被抑制則回傳 NOTHING。
            衍生值為 None 時同樣視為一次有效的發出。

        Raises:
            管線中 selector 或判斷函數拋出的任何異常。
        """
        if self._disposable is None:
            self._disposable = self.source.subscribe(
                on_next=self._on_next, on_error=self._on_error
            )

        self._emitted = NOTHING
        self.root.on_next(state)

        emitted, self._emitted = self._emitted, NOTHING
        if self._error is not None:
            # 發生錯誤後 reactivex 已經斷開觀察者，下次 apply 重新掛上
            error, self._error = self._error, None
            self._disposable = None
            raise error
        return emitted

    def dispose(self) -> None:
        """釋放這條管線持有的訂閱。"""
        if self._disposable is not None:
            self._disposable.dispose()
            self._disposable = None

    def __repr__(self) -> str:
        state = "active" if self._disposable is not None else "idle"
        return f"Subscription({state})"
