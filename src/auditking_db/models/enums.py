"""Database-level enumerations."""

import enum


class InspectionStatus(str, enum.Enum):
    """Lifecycle states for an inspection.

    Transitions:
        in_progress -> submitted  (all required questions answered)

    Submitted inspections are read-only.
    """

    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
