"""Rich terminal UI components for survey results."""

from waps_survey.ui.display import (
    display_emitters,
    display_location_summary,
    display_scan_log,
    print_banner,
    print_error,
    print_success,
    print_warning,
)

__all__ = [
    "display_emitters",
    "display_location_summary",
    "display_scan_log",
    "print_banner",
    "print_error",
    "print_success",
    "print_warning",
]
