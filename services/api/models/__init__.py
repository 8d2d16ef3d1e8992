from __future__ import annotations

from .inventory import (
    BOX_TYPE_LABELS,
    BoxType,
    Destination,
    ProcessCategory,
    humanize_tipo,
    numeric_box_key,
    process_category_for,
)

__all__ = [
    "BOX_TYPE_LABELS",
    "BoxType",
    "Destination",
    "ProcessCategory",
    "humanize_tipo",
    "numeric_box_key",
    "process_category_for",
]
