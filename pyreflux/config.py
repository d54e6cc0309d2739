"""
Store 設定。
"""
from pydantic import BaseModel, ConfigDict


class StoreConfig(BaseModel):
    """
    Store 的行為選項。

    Attributes:
        automatically_skips_repeats: 每個訂閱的管線最後自動加上 skip_repeats()，
            以 == 過濾重複的通知。
        freeze_state: reducer 產生的狀態一律轉為不可變結構（immutables.Map 等）。
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    automatically_skips_repeats: bool = False
    freeze_state: bool = False
