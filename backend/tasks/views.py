# views.py
import logging
from datetime import date

from django.conf import settings
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from .projection import ensure_date
from .reporting import dashboard_summary
from .repository import TaskRepository
from .scheduling import project_duration, task_critical_path
from .serializers import TaskSerializer, serialize_tree

logger = logging.getLogger(__name__)

repository = TaskRepository()


def resolve_now(request) -> date:
    """Reference date for scheduling: the `as_of` query parameter, else today."""
    raw = request.query_params.get('as_of')
    if not raw:
        return timezone.localdate()
    try:
        return ensure_date(raw)
    except ValueError:
        raise ValidationError({'as_of': f'Invalid date: {raw!r}'})


def _positive_int_param(request, name: str, default: int) -> int:
    raw = request.query_params.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError({name: 'Must be an integer.'})
    if value < 1:
        raise ValidationError({name: 'Must be at least 1.'})
    return value


def get_task_or_404(task_id: str):
    task = repository.get_task_by_id(task_id)
    if task is None:
        logger.warning("Task %s not found", task_id)
        raise NotFound(f'Task {task_id} not found.')
    return task


class TaskList(APIView):
    """
    GET  /api/tasks/?team=&location=  list tasks, optionally filtered
    POST /api/tasks/                  create a task
    """

    def get(self, request):
        tasks = repository.filter_tasks(
            team=request.query_params.get('team'),
            location=request.query_params.get('location'),
        )
        return Response(TaskSerializer(tasks, many=True).data, status=status.HTTP_200_OK)

    def post(self, request):
        serializer = TaskSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        task = repository.create_task(serializer.validated_data)
        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)


class RecentTasks(APIView):
    """
    GET /api/tasks/recent/?limit=N
    Most recently created tasks first.
    """

    def get(self, request):
        limit = _positive_int_param(request, 'limit', settings.PLANNER_RECENT_LIMIT)
        tasks = repository.recent_tasks(limit)
        return Response(TaskSerializer(tasks, many=True).data, status=status.HTTP_200_OK)


class TaskDetail(APIView):
    """
    GET    /api/tasks/<id>/
    PUT    /api/tasks/<id>/  full update
    PATCH  /api/tasks/<id>/  partial update
    DELETE /api/tasks/<id>/  delete and unlink from other tasks' prerequisites
    """

    def get(self, request, task_id):
        task = get_task_or_404(task_id)
        return Response(TaskSerializer(task).data, status=status.HTTP_200_OK)

    def _update(self, request, task_id, partial):
        task = get_task_or_404(task_id)
        serializer = TaskSerializer(task, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        task = repository.update_task(task.id, serializer.validated_data)
        return Response(TaskSerializer(task).data, status=status.HTTP_200_OK)

    def put(self, request, task_id):
        return self._update(request, task_id, partial=False)

    def patch(self, request, task_id):
        return self._update(request, task_id, partial=True)

    def delete(self, request, task_id):
        if not repository.delete_task(task_id):
            raise NotFound(f'Task {task_id} not found.')
        return Response(status=status.HTTP_204_NO_CONTENT)


class TaskTree(APIView):
    """
    GET /api/tasks/<id>/tree/?depth=N
    Prerequisite tree below a task, as nested data.
    """

    def get(self, request, task_id):
        get_task_or_404(task_id)
        depth = _positive_int_param(request, 'depth', settings.PLANNER_TREE_MAX_DEPTH)
        tree = repository.snapshot().build_tree(task_id, max_depth=depth)
        return Response(serialize_tree(tree), status=status.HTTP_200_OK)


class RootTrees(APIView):
    """
    GET /api/tasks/roots/?depth=N
    One prerequisite tree per task that has no prerequisites.
    """

    def get(self, request):
        depth = _positive_int_param(request, 'depth', settings.PLANNER_TREE_MAX_DEPTH)
        graph = repository.snapshot()
        trees = [serialize_tree(graph.build_tree(t.id, max_depth=depth)) for t in graph.root_tasks()]
        return Response(trees, status=status.HTTP_200_OK)


class TaskCriticalPath(APIView):
    """
    GET /api/tasks/<id>/critical-path/?as_of=YYYY-MM-DD
    Longest prerequisite chain ending at this task.
    """

    def get(self, request, task_id):
        get_task_or_404(task_id)
        now = resolve_now(request)
        result = task_critical_path(repository.snapshot(), task_id, now)
        return Response(result, status=status.HTTP_200_OK)


class ProjectDuration(APIView):
    """
    GET /api/project/duration/?as_of=YYYY-MM-DD
    Returns {"days": ..., "criticalPath": [...]} over every end task.
    """

    def get(self, request):
        now = resolve_now(request)
        result = project_duration(repository.snapshot(), now)
        return Response(result, status=status.HTTP_200_OK)


class Dashboard(APIView):
    """
    GET /api/dashboard/?as_of=YYYY-MM-DD
    Totals, per-team and per-status counts, project duration and cycles.
    """

    def get(self, request):
        now = resolve_now(request)
        summary = dashboard_summary(repository.snapshot(), now, settings.PLANNER_TEAMS)
        return Response(summary, status=status.HTTP_200_OK)
