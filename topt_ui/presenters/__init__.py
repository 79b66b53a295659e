from topt_ui.presenters.optimizer import (
    describe_key,
    render_help,
    render_start_report,
    render_status_report,
    render_stop_report,
)

__all__ = [
    "describe_key",
    "render_help",
    "render_start_report",
    "render_status_report",
    "render_stop_report",
]
