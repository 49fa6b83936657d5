"""Display and formatting utilities for captrack."""

from captrack.display.formatters import (
    create_generation_table,
    create_model_health_table,
    display_gap_detection_result,
    display_generation_result,
    display_model_health,
)

__all__ = [
    "create_generation_table",
    "create_model_health_table",
    "display_gap_detection_result",
    "display_generation_result",
    "display_model_health",
]
