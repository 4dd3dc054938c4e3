"""CLI UI components for terminal-based execution monitoring.

This package provides rich terminal UI capabilities for:
- Visualizing workflow graphs with execution status
- Real-time execution monitoring
- Node result inspection
- Status and log panels
"""

from flowmon.cli_ui.graph_renderer import StatusTableRenderer, TerminalGraphRenderer
from flowmon.cli_ui.live_monitor import LiveExecutionMonitor
from flowmon.cli_ui.node_inspector import NodeInspector

__all__ = [
    "TerminalGraphRenderer",
    "StatusTableRenderer",
    "LiveExecutionMonitor",
    "NodeInspector",
]
