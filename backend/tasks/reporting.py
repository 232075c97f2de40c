"""Dashboard aggregates for the task table."""

from typing import Any, Dict, Iterable

from .graph import TaskGraph, detect_cycles
from .projection import COMPLETED, NOT_STARTED, STARTED
from .scheduling import project_duration


def _is_completed(task) -> bool:
    return (task.completion_percentage or 0) >= 100


def team_stats(graph: TaskGraph, teams: Iterable[str]) -> list:
    stats = []
    for team in teams:
        team_tasks = [t for t in graph.get_all_tasks() if t.team == team]
        stats.append({
            "team": team,
            "total": len(team_tasks),
            "completed": sum(1 for t in team_tasks if _is_completed(t)),
        })
    return stats


def status_counts(graph: TaskGraph) -> Dict[str, int]:
    # a completed task without an actual start date counts as both
    # not started and completed
    tasks = graph.get_all_tasks()
    return {
        NOT_STARTED: sum(1 for t in tasks if not t.actual_start_date),
        STARTED: sum(1 for t in tasks if t.actual_start_date and not _is_completed(t)),
        COMPLETED: sum(1 for t in tasks if _is_completed(t)),
    }


def dashboard_summary(graph: TaskGraph, now: Any, teams: Iterable[str]) -> Dict[str, Any]:
    tasks = graph.get_all_tasks()
    completed = sum(1 for t in tasks if _is_completed(t))
    return {
        "totalTasks": len(tasks),
        "completedTasks": completed,
        "incompleteTasks": len(tasks) - completed,
        "teams": team_stats(graph, teams),
        "status": status_counts(graph),
        "projectDuration": project_duration(graph, now),
        "cycles": detect_cycles(graph),
    }
