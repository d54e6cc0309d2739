# pyreflux/immutable_utils.py
from typing import Any

from immutables import Map
from pydantic import BaseModel


def freeze(obj: Any) -> Any:
    """將狀態轉換為不可變形式 (包括 Pydantic 模型)"""
    if isinstance(obj, BaseModel):
        # 凍結的 Pydantic 模型本身就不可變
        if obj.model_config.get("frozen"):
            return obj
        return Map({k: freeze(v) for k, v in obj.model_dump().items()})
    elif isinstance(obj, Map):
        return obj
    elif isinstance(obj, dict):
        return Map({k: freeze(v) for k, v in obj.items()})
    elif isinstance(obj, list):
        return tuple(freeze(i) for i in obj)
    elif isinstance(obj, (set, frozenset)):
        return frozenset(freeze(i) for i in obj)
    return obj


def thaw(obj: Any) -> Any:
    """將 Map 及其巢狀結構轉換回普通的 dict / list / set"""
    if isinstance(obj, Map):
        return {k: thaw(v) for k, v in obj.items()}
    elif isinstance(obj, tuple):
        return [thaw(i) for i in obj]
    elif isinstance(obj, frozenset):
        return {thaw(i) for i in obj}
    return obj
