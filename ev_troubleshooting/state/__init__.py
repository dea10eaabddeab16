"""
State Layer - Runtime Data Models

Defines the runtime state model that tracks a technician's position in a
decision tree and their progress through the report wizard.
"""

from ev_troubleshooting.state.models import (
    ReportData,
    ReportState,
    ReportStep,
    SessionState,
)

__all__ = [
    "ReportData",
    "ReportState",
    "ReportStep",
    "SessionState",
]
