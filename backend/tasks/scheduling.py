"""Critical path and project duration over a task dependency graph.

The walk starts at a task and recurses backward through its prerequisites,
keeping the prerequisite chain with the greatest accumulated duration. Each
task adds its own contribution, measured in whole days from "now" to its
effective end date, so totals are stacked now-to-end spans rather than
calendar lengths.

Cycles are cut by the set of ids on the current recursion path; siblings
never see each other's history, so tasks reached through several paths
(diamonds) are recomputed on each of them. There is no cross-branch cache.
"""

import logging
from typing import Any, Dict, FrozenSet, List, NamedTuple

from .graph import TaskGraph
from .projection import ensure_date, own_contribution

logger = logging.getLogger(__name__)


class CriticalPath(NamedTuple):
    duration: int
    chain: List[Any]


EMPTY_PATH = CriticalPath(0, [])


def critical_path_to(graph: TaskGraph, task_id: str, now: Any,
                     ancestors: FrozenSet[str] = frozenset()) -> CriticalPath:
    """Longest chain of work ending at `task_id`.

    Args:
        graph: snapshot to read tasks from
        task_id: task the chain ends at
        now: reference date for every task's contribution
        ancestors: ids already on the current recursion path

    Returns:
        CriticalPath(duration, chain) with the chain ordered earliest
        prerequisite first and `task_id`'s task last. A missing task or a
        task already on the path yields (0, []).
    """
    if task_id in ancestors:
        logger.debug("Cycle at %s; truncating this branch", task_id)
        return EMPTY_PATH

    task = graph.get_task_by_id(task_id)
    if task is None:
        return EMPTY_PATH

    today = ensure_date(now)
    path_ids = ancestors | {task_id}

    best = EMPTY_PATH
    for prereq_id in graph.prerequisites_of(task_id):
        result = critical_path_to(graph, prereq_id, today, path_ids)
        if result.duration > best.duration:
            best = result

    return CriticalPath(best.duration + own_contribution(task, today), best.chain + [task])


def project_duration(graph: TaskGraph, now: Any) -> Dict[str, Any]:
    """Project length and critical path over every sink task.

    Returns:
        {"days": total stacked days, "criticalPath": [task ids]}; an empty
        graph gives {"days": 0, "criticalPath": []}.
    """
    today = ensure_date(now)
    best = EMPTY_PATH
    sinks = graph.sink_tasks()

    for sink in sinks:
        result = critical_path_to(graph, sink.id, today)
        if result.duration > best.duration:
            best = result

    logger.debug("Scheduled %s tasks from %s sinks as of %s: %s days",
                 len(graph), len(sinks), today, best.duration)
    return {
        "days": best.duration,
        "criticalPath": [t.id for t in best.chain],
    }


def task_critical_path(graph: TaskGraph, task_id: str, now: Any) -> Dict[str, Any]:
    """Critical path ending at one task, in the same shape as `project_duration`."""
    result = critical_path_to(graph, task_id, now)
    return {
        "days": result.duration,
        "criticalPath": [t.id for t in result.chain],
    }
