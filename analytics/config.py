from __future__ import annotations

"""Analytics configuration (hyperparameters) using Pydantic."""

from typing import Any, Dict

from pydantic import BaseModel, Field


class AnalyticsConfig(BaseModel):
    """Settings for history statistics.

    - window_days: how many days the daily table covers (>0)
    - smoothing_span: EWMA span in days (>1)
    - weak_accuracy: categories below this accuracy are flagged (0..1]
    """

    window_days: int = Field(14, gt=0)
    smoothing_span: int = Field(7, gt=1)
    weak_accuracy: float = Field(0.7, gt=0, le=1)

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "AnalyticsConfig":
        return cls.model_validate(cfg.get("analytics", {}))
