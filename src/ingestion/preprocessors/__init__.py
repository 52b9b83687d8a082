"""Pure transforms applied between collection and persistence."""

from src.ingestion.preprocessors.observation_transforms import (
    calculate_mom_change,
    calculate_yoy,
    derive_metric,
    level_values,
)
from src.ingestion.preprocessors.price_merger import merge_price_series

__all__ = [
    "calculate_yoy",
    "calculate_mom_change",
    "level_values",
    "derive_metric",
    "merge_price_series",
]
