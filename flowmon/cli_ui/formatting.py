"""Display helpers shared by the terminal renderers."""

from datetime import datetime

from flowmon.core.graph_schema import ExecutionStatus

# Status colors - string keys so both run and node statuses can be looked up
STATUS_COLORS = {
    "pending": "dim",
    "running": "yellow bold",
    "success": "green",
    "error": "red bold",
    "skipped": "dim strikethrough",
}

STATUS_LABELS = {
    "pending": "○ Pending",
    "running": "⟳ Running",
    "success": "✓ Success",
    "error": "✗ Error",
    "skipped": "⊘ Skipped",
}


def normalize_status(status) -> str:
    """Normalize enum or raw status values to a lowercase string."""
    if status is None:
        return ExecutionStatus.PENDING.value
    value = getattr(status, "value", status)
    return str(value).lower() or ExecutionStatus.PENDING.value


def status_color(status) -> str:
    return STATUS_COLORS.get(normalize_status(status), "white")


def status_markup(status) -> str:
    """Colored status label as Rich markup."""
    key = normalize_status(status)
    label = STATUS_LABELS.get(key, key.upper())
    return f"[{status_color(key)}]{label}[/]"


def format_duration(duration_ms: int | float | None) -> str:
    if duration_ms is None:
        return "-"
    if duration_ms < 1000:
        return f"{int(duration_ms)}ms"
    return f"{duration_ms / 1000:.2f}s"


def format_time(timestamp_sec: int | float | None) -> str:
    """Local wall-clock time for a Unix timestamp in seconds ("N/A" when unset or out of range)."""
    if not timestamp_sec:
        return "N/A"
    try:
        return datetime.fromtimestamp(timestamp_sec).strftime("%H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return "N/A"


def short_id(run_id: str | None, keep: int = 8) -> str:
    """Abbreviate long ids as ``first8...last8``."""
    if not run_id:
        return "-"
    if len(run_id) <= keep * 2 + 3:
        return run_id
    return f"{run_id[:keep]}...{run_id[-keep:]}"
