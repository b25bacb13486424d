"""
Explicit transition tables for the floor state machines.

Each entity type declares one table mapping a current state to the states it
may move to; services check every requested transition here and nowhere else.
"""
from core_backend.exceptions import ValidationError


class TransitionTable:
    def __init__(self, entity, transitions):
        self.entity = entity
        # Keys are plain strings so TextChoices members and raw request values compare alike
        self.transitions = {
            str(state): frozenset(str(target) for target in targets)
            for state, targets in transitions.items()
        }

    def allows(self, current, requested) -> bool:
        return str(requested) in self.transitions.get(str(current), frozenset())

    def is_terminal(self, state) -> bool:
        return not self.transitions.get(str(state))

    def check(self, current, requested):
        if str(requested) not in self.transitions:
            raise ValidationError(
                f"'{requested}' is not a valid {self.entity} status.",
                details={"status": str(requested)},
            )
        if not self.allows(current, requested):
            raise ValidationError(
                f"Cannot transition {self.entity} from {current} to {requested}.",
                details={"current": str(current), "requested": str(requested)},
            )
