"""
Activity network data model and the graph builder.

Form rows come in as ``{name, duration, precedingEvents}``; the builder turns
them into an :class:`ActivityNetwork` whose activities get positional ids
(1, 2, 3, ... in submission order) and whose links point from each preceding
id to the new activity.
"""
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from services.errors import ActivityNotFound, DanglingPrecedence, InvalidDuration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Activity:
    id: int
    name: str
    duration: float
    early_start: float = 0.0
    late_finish: float = 0.0
    critical: bool = False

    @property
    def early_finish(self) -> float:
        return self.early_start + self.duration

    @property
    def late_start(self) -> float:
        return self.late_finish - self.duration

    @property
    def slack(self) -> float:
        return self.late_finish - self.early_finish

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "duration": self.duration,
            "es": self.early_start,
            "ef": self.early_finish,
            "ls": self.late_start,
            "lf": self.late_finish,
            "slack": self.slack,
            "critical": self.critical,
        }


@dataclass(frozen=True)
class Link:
    source: int
    target: int

    def to_dict(self) -> Dict[str, int]:
        return {"from": self.source, "to": self.target}


@dataclass(frozen=True)
class ActivityNetwork:
    activities: Tuple[Activity, ...] = ()
    links: Tuple[Link, ...] = ()

    def __post_init__(self):
        # accept lists, store tuples
        object.__setattr__(self, "activities", tuple(self.activities))
        object.__setattr__(self, "links", tuple(self.links))

    def __len__(self) -> int:
        return len(self.activities)

    def by_id(self) -> Dict[int, Activity]:
        return {a.id: a for a in self.activities}

    def predecessors_of(self, activity_id: int) -> List[int]:
        return list(dict.fromkeys(l.source for l in self.links if l.target == activity_id))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activities": [a.to_dict() for a in self.activities],
            "links": [l.to_dict() for l in self.links],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ActivityNetwork":
        """
        Rebuild a network from plain ``{activities: [...], links: [...]}``
        records. Durations are parsed; topology is taken as given.
        """
        activities = [
            Activity(
                id=int(a["id"]),
                name=str(a.get("name", "")),
                duration=parse_duration(a.get("duration"), position=i),
            )
            for i, a in enumerate(data.get("activities", []), start=1)
        ]
        links = [Link(int(l["from"]), int(l["to"])) for l in data.get("links", [])]
        return cls(activities, links)


@dataclass
class Entry:
    name: str
    duration: Any
    preceding_ids: List[int] = field(default_factory=list)


@dataclass
class BuildResult:
    network: ActivityNetwork
    issues: List[Exception] = field(default_factory=list)

    @property
    def rejected(self) -> List[InvalidDuration]:
        return [i for i in self.issues if isinstance(i, InvalidDuration)]

    @property
    def dropped_links(self) -> List[DanglingPrecedence]:
        return [i for i in self.issues if isinstance(i, DanglingPrecedence)]


def parse_duration(value: Any, position: Optional[int] = None) -> float:
    """
    Parse a duration given as a number or numeric text.
    Raises InvalidDuration for anything that is not a finite number >= 0.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidDuration(value, position)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidDuration(value, position)
        try:
            duration = float(text)
        except ValueError:
            raise InvalidDuration(value, position)
    elif isinstance(value, (int, float)):
        duration = float(value)
    else:
        raise InvalidDuration(value, position)

    if not math.isfinite(duration) or duration < 0:
        raise InvalidDuration(value, position)
    return duration


def parse_preceding(value: Any) -> List[int]:
    """
    Parse preceding event ids from a list or a comma separated string.
    Items that are not integers are ignored; duplicates collapse.
    """
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = value
    else:
        items = [value]

    ids: List[int] = []
    for item in items:
        if isinstance(item, bool):
            continue
        if isinstance(item, int):
            parsed = item
        elif isinstance(item, float) and item.is_integer():
            parsed = int(item)
        elif isinstance(item, str):
            try:
                parsed = int(item.strip())
            except ValueError:
                continue
        else:
            continue
        if parsed not in ids:
            ids.append(parsed)
    return ids


def entries_from_rows(rows: Sequence[Mapping[str, Any]]) -> List[Entry]:
    """
    Convert raw form rows into builder entries. Durations are left as given
    so the builder can reject them per entry.
    """
    entries: List[Entry] = []
    for row in rows:
        name = row.get("name", row.get("eventName", ""))
        duration = row.get("duration", row.get("length"))
        preceding = row.get("precedingEvents", row.get("preceding"))
        entries.append(Entry(
            name="" if name is None else str(name),
            duration=duration,
            preceding_ids=parse_preceding(preceding),
        ))
    return entries


def build_network(entries: Iterable[Entry]) -> BuildResult:
    """
    Build a fresh activity network from ordered entries.

    Each accepted entry gets id ``len(accepted) + 1``. Entries with a bad
    duration are skipped and reported. Preceding ids that do not refer to an
    already assigned id are dropped and reported.
    """
    activities: List[Activity] = []
    links: List[Link] = []
    issues: List[Exception] = []

    for position, entry in enumerate(entries, start=1):
        try:
            duration = parse_duration(entry.duration, position)
        except InvalidDuration as exc:
            logger.warning("Skipping event: %s", exc)
            issues.append(exc)
            continue

        newId = len(activities) + 1
        activities.append(Activity(id=newId, name=entry.name, duration=duration))

        seen = set()
        for precedingId in entry.preceding_ids:
            if precedingId in seen:
                continue
            seen.add(precedingId)
            if 1 <= precedingId < newId:
                links.append(Link(precedingId, newId))
            else:
                dangling = DanglingPrecedence(precedingId, position)
                logger.warning("Dropping link: %s", dangling)
                issues.append(dangling)

    logger.debug("Built network: %d events, %d links, %d issues",
                  len(activities), len(links), len(issues))
    return BuildResult(ActivityNetwork(activities, links), issues)


def get_activity(network: ActivityNetwork, activity_id: int) -> Activity:
    for activity in network.activities:
        if activity.id == activity_id:
            return activity
    raise ActivityNotFound(activity_id)


def update_activity(network: ActivityNetwork, activity_id: int,
                    name: Optional[str] = None,
                    duration: Any = None) -> Tuple[ActivityNetwork, bool]:
    """
    Edit the name and/or duration of one activity.

    Returns the new network and whether it must be solved again, which is
    the case only when the duration actually changed. Topology is untouched.
    """
    current = get_activity(network, activity_id)
    changes: Dict[str, Any] = {}
    if name is not None:
        changes["name"] = str(name)
    if duration is not None:
        changes["duration"] = parse_duration(duration)

    if not changes:
        return network, False

    updated = replace(current, **changes)
    needs_solve = updated.duration != current.duration
    activities = [updated if a.id == activity_id else a for a in network.activities]
    return ActivityNetwork(activities, network.links), needs_solve
