from core_backend.state_machine import TransitionTable
from floor.models import Table

Status = Table.TableStatus

# OCCUPIED is only entered from a free table; leaving it is guarded by the
# service (the attached order must be terminal first).
TABLE_TRANSITIONS = TransitionTable(
    "table",
    {
        Status.AVAILABLE: {Status.RESERVED, Status.OCCUPIED, Status.DIRTY, Status.CLEANING},
        Status.RESERVED: {Status.AVAILABLE, Status.OCCUPIED, Status.DIRTY, Status.CLEANING},
        Status.OCCUPIED: {Status.DIRTY, Status.AVAILABLE},
        Status.DIRTY: {Status.CLEANING, Status.AVAILABLE, Status.RESERVED},
        Status.CLEANING: {Status.AVAILABLE, Status.DIRTY, Status.RESERVED},
    },
)
