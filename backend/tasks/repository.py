"""Task persistence on top of the Django ORM."""

import logging
from typing import Any, Dict, List, Optional

from django.db import transaction

from .graph import TaskGraph
from .models import Task, generate_task_id

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = (
    "description",
    "team",
    "prerequisites",
    "expected_time",
    "completion_percentage",
    "estimated_start_date",
    "actual_start_date",
    "people_involved",
    "working_location",
)


def _with_defaults(fields: Dict[str, Any], fill_missing: bool = False) -> Dict[str, Any]:
    """Replace null list fields with [] and a null completion with 0."""
    empty = {"prerequisites": list, "people_involved": list, "completion_percentage": int}
    for key, factory in empty.items():
        if fields.get(key) is None and (fill_missing or key in fields):
            fields[key] = factory()
    return fields


class TaskRepository:
    """Create/read/update/delete for tasks, plus snapshots for scheduling."""

    def get_all_tasks(self) -> List[Task]:
        return list(Task.objects.all())

    def get_task_by_id(self, task_id: str) -> Optional[Task]:
        return Task.objects.filter(pk=task_id).first()

    def snapshot(self) -> TaskGraph:
        """Dependency graph over the current table contents."""
        return TaskGraph(self.get_all_tasks())

    def filter_tasks(self, team: Optional[str] = None, location: Optional[str] = None) -> List[Task]:
        qs = Task.objects.all()
        if team:
            qs = qs.filter(team=team)
        if location:
            qs = qs.filter(working_location=location)
        return list(qs)

    def recent_tasks(self, limit: int = 5) -> List[Task]:
        return list(Task.objects.order_by("-created_at", "-id")[:limit])

    def _new_id(self) -> str:
        task_id = generate_task_id()
        while Task.objects.filter(pk=task_id).exists():
            task_id = generate_task_id()
        return task_id

    def create_task(self, data: Dict[str, Any]) -> Task:
        fields = _with_defaults({k: v for k, v in data.items() if k in MUTABLE_FIELDS}, fill_missing=True)
        task = Task.objects.create(id=self._new_id(), **fields)
        logger.info("Created task %s (%s)", task.id, task.team)
        return task

    def update_task(self, task_id: str, data: Dict[str, Any]) -> Optional[Task]:
        """Replace any subset of mutable fields; returns None for unknown ids."""
        task = self.get_task_by_id(task_id)
        if task is None:
            return None
        fields = _with_defaults({k: v for k, v in data.items() if k in MUTABLE_FIELDS})
        changed = list(fields)
        for key, value in fields.items():
            setattr(task, key, value)
        task.save()
        logger.info("Updated task %s fields=%s", task.id, changed)
        return task

    def delete_task(self, task_id: str) -> bool:
        """Delete a task and drop its id from every other task's prerequisites."""
        with transaction.atomic():
            task = self.get_task_by_id(task_id)
            if task is None:
                return False

            dependents = 0
            for other in Task.objects.exclude(pk=task_id):
                prereqs = other.prerequisites or []
                if task_id in prereqs:
                    other.prerequisites = [p for p in prereqs if p != task_id]
                    other.save(update_fields=["prerequisites", "updated_at"])
                    dependents += 1

            task.delete()
        logger.info("Deleted task %s (unlinked from %s dependents)", task_id, dependents)
        return True
