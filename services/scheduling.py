import logging
from collections import deque
from dataclasses import replace
from typing import Any, Dict, List

from services.errors import CyclicNetworkError, SchedulingError, UnknownActivityReference
from services.network import ActivityNetwork, Link

logger = logging.getLogger(__name__)


def _adjacency(network: ActivityNetwork):
    """
    Predecessor and successor lists keyed by activity id.
    Raises on duplicate ids and on links to ids that are not in the network.
    """
    ids: List[int] = [a.id for a in network.activities]
    if len(set(ids)) != len(ids):
        seen, dups = set(), set()
        for x in ids:
            if x in seen:
                dups.add(x)
            seen.add(x)
        dup_list = ", ".join(str(d) for d in sorted(dups))
        raise SchedulingError(f"Duplicate event ids found: {dup_list}")

    preds: Dict[int, List[int]] = {i: [] for i in ids}
    succs: Dict[int, List[int]] = {i: [] for i in ids}
    for link in network.links:
        for endpoint in (link.source, link.target):
            if endpoint not in preds:
                raise UnknownActivityReference(link.source, link.target, endpoint)
        if link.source not in preds[link.target]:
            preds[link.target].append(link.source)
            succs[link.source].append(link.target)
    return preds, succs


def topological_order(network: ActivityNetwork) -> List[int]:
    """
    Kahn's algorithm over the activity ids. Raises CyclicNetworkError when
    some activities can never be reached because they sit on a cycle.
    """
    preds, succs = _adjacency(network)
    return _kahn(preds, succs)


def _kahn(preds: Dict[int, List[int]], succs: Dict[int, List[int]]) -> List[int]:
    dependenciesCount: Dict[int, int] = {
        activityId: len(preds[activityId]) for activityId in preds
    }
    queue: deque = deque([
        activityId
        for activityId, depCount in dependenciesCount.items()
        if depCount == 0
    ])
    order: List[int] = []

    while queue:
        currentId = queue.popleft()
        order.append(currentId)

        for dependentId in succs[currentId]:
            dependenciesCount[dependentId] -= 1
            if dependenciesCount[dependentId] == 0:
                queue.append(dependentId)

    if len(order) != len(preds):
        blocked = {i for i, count in dependenciesCount.items() if count > 0}
        error = CyclicNetworkError(_on_cycles(blocked, preds, succs))
        logger.error("%s", error)
        raise error
    return order


def _on_cycles(blocked, preds, succs) -> List[int]:
    """Drop blocked activities that only sit downstream of a cycle."""
    outCount: Dict[int, int] = {
        i: sum(1 for s in succs[i] if s in blocked) for i in blocked
    }
    queue: deque = deque(i for i, count in outCount.items() if count == 0)
    while queue:
        currentId = queue.popleft()
        blocked.discard(currentId)
        for p in preds[currentId]:
            if p in blocked:
                outCount[p] -= 1
                if outCount[p] == 0:
                    queue.append(p)
    return sorted(blocked)


def solve(network: ActivityNetwork) -> ActivityNetwork:
    """
    Run the CPM forward and backward passes and return a solved copy.

    ES(a) is the max EF over its predecessors (0 for sources). A sink keeps
    its own EF as LF; any other activity gets the min LS over its successors.
    An activity is critical when its slack is exactly zero.
    """
    if not network.activities and not network.links:
        return network

    preds, succs = _adjacency(network)
    order = _kahn(preds, succs)
    dur: Dict[int, float] = {a.id: a.duration for a in network.activities}

    es: Dict[int, float] = {}
    ef: Dict[int, float] = {}
    for activityId in order:
        es[activityId] = max((ef[p] for p in preds[activityId]), default=0.0)
        ef[activityId] = es[activityId] + dur[activityId]

    lf: Dict[int, float] = {}
    for activityId in reversed(order):
        lf[activityId] = min((lf[s] - dur[s] for s in succs[activityId]),
                             default=ef[activityId])

    solved = [
        replace(a,
                early_start=es[a.id],
                late_finish=lf[a.id],
                critical=(lf[a.id] - ef[a.id]) == 0)
        for a in network.activities
    ]
    logger.info("Solved network: %d events, %d critical",
                len(solved), sum(1 for a in solved if a.critical))
    return ActivityNetwork(solved, dict.fromkeys(network.links))


def project_duration(network: ActivityNetwork) -> float:
    return max((a.early_finish for a in network.activities), default=0.0)


def critical_links(network: ActivityNetwork) -> List[Link]:
    by_id = network.by_id()
    return [l for l in network.links
            if by_id[l.source].critical and by_id[l.target].critical]


def critical_path(network: ActivityNetwork) -> List[int]:
    critical = [a for a in network.activities if a.critical]
    critical.sort(key=lambda a: (a.early_start, a.id))
    return [a.id for a in critical]


def schedule_rows(network: ActivityNetwork) -> List[Dict[str, Any]]:
    """Per-activity table rows: timings plus the ids each activity waits on."""
    rows: List[Dict[str, Any]] = []
    for activity in network.activities:
        row = activity.to_dict()
        row["predecessors"] = network.predecessors_of(activity.id)
        rows.append(row)
    return rows


def analyze(network: ActivityNetwork) -> Dict[str, Any]:
    """
    Solve the network and assemble the result handed to the page.
    """
    solved = solve(network)
    on_path = set(critical_links(solved))

    return {
        "project_duration": project_duration(solved),
        "activities": schedule_rows(solved),
        "links": [
            {"from": l.source, "to": l.target, "critical": l in on_path}
            for l in solved.links
        ],
        "critical_path": critical_path(solved),
    }
