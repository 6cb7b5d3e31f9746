from typing import List, Optional


class SchedulingError(ValueError):
    """Base class for user-facing problems with submitted project data."""


class InvalidDuration(SchedulingError):
    """A submitted duration is not a valid non-negative number."""

    def __init__(self, value, position: Optional[int] = None):
        self.value = value
        self.position = position
        where = f"Event #{position}: " if position is not None else ""
        super().__init__(f"{where}'duration' must be a number >= 0, got {value!r}.")


class DanglingPrecedence(SchedulingError):
    """A preceding-event reference does not resolve to an earlier activity."""

    def __init__(self, preceding_id: int, position: Optional[int] = None):
        self.preceding_id = preceding_id
        self.position = position
        where = f"Event #{position}: " if position is not None else ""
        super().__init__(f"{where}preceding event '{preceding_id}' does not exist yet, link dropped.")


class CyclicNetworkError(SchedulingError):
    """The precedence links form a directed cycle."""

    def __init__(self, remaining: List[int]):
        self.remaining = sorted(remaining)
        ids = ", ".join(str(i) for i in self.remaining)
        super().__init__(f"Cycle detected in dependencies (events: {ids})")


class UnknownActivityReference(SchedulingError):
    """A link points at an activity id missing from the network."""

    def __init__(self, link_from: int, link_to: int, missing: int):
        self.link = (link_from, link_to)
        self.missing = missing
        super().__init__(f"Link {link_from}->{link_to} references unknown event {missing}.")


class ActivityNotFound(LookupError):
    def __init__(self, activity_id):
        self.activity_id = activity_id
        super().__init__(f"Event {activity_id} does not exist.")
