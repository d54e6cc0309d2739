"""
PyReflux 錯誤定義模組。

核心只在呼叫端用錯 API 時拋出錯誤；reducer 與 selector 內部的異常
一律原樣向上傳遞，不在這裡包裝。
"""

import traceback
from typing import Any, Dict, Optional


class PyRefluxError(Exception):
    """所有 PyReflux 異常的基礎類。"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """
        將錯誤轉換為字典，方便記錄或序列化。

        Returns:
            包含錯誤類型、訊息與細節的字典。
        """
        return {
            "type": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class StoreError(PyRefluxError):
    """與 Store 操作相關的錯誤。"""

    def __init__(self, message: str, operation: str, **kwargs: Any):
        details = {"operation": operation}
        details.update(kwargs)
        super().__init__(message, details)
        self.operation = operation


class SubscriptionError(PyRefluxError):
    """訂閱者不符合要求時拋出。"""

    def __init__(self, message: str, subscriber: Any = None, **kwargs: Any):
        details = {"subscriber": type(subscriber).__name__}
        details.update(kwargs)
        super().__init__(message, details)
        self.subscriber = subscriber
