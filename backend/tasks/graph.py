"""Read-only dependency graph over a snapshot of tasks.

Contains utilities for:
- looking tasks up by id over an ordered snapshot,
- prerequisite / sink / root queries,
- building prerequisite trees as plain data,
- reporting prerequisite cycles.

Prerequisite ids that point at missing tasks are treated as missing
dependencies, never as errors.
"""

from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

DEFAULT_TREE_DEPTH = 5


class TaskGraph:
    """Snapshot of the task table used by the scheduling engine."""

    def __init__(self, tasks: Iterable[Any]):
        self._tasks: List[Any] = list(tasks)
        self._by_id: Dict[str, Any] = {}
        for task in self._tasks:
            self._by_id.setdefault(task.id, task)

    def __len__(self) -> int:
        return len(self._tasks)

    def get_all_tasks(self) -> List[Any]:
        return list(self._tasks)

    def get_task_by_id(self, task_id: str) -> Optional[Any]:
        return self._by_id.get(task_id)

    def prerequisites_of(self, task_id: str) -> List[str]:
        task = self.get_task_by_id(task_id)
        if task is None:
            return []
        return list(task.prerequisites or [])

    def sink_tasks(self) -> List[Any]:
        """Tasks that no other task lists as a prerequisite, in snapshot order."""
        required: Set[str] = set()
        for task in self._tasks:
            required.update(p for p in (task.prerequisites or []) if p != task.id)
        return [t for t in self._tasks if t.id not in required]

    def root_tasks(self) -> List[Any]:
        """Tasks without prerequisites."""
        return [t for t in self._tasks if not t.prerequisites]

    def build_tree(self, root_id: str, max_depth: int = DEFAULT_TREE_DEPTH,
                   current_depth: int = 0) -> Optional[Dict[str, Any]]:
        """Nested {"task", "children"} data following prerequisites.

        Stops `max_depth` levels below the root; missing ids are skipped.
        Cycles are cut by the depth limit.
        """
        if current_depth >= max_depth:
            return None
        task = self.get_task_by_id(root_id)
        if task is None:
            return None

        node: Dict[str, Any] = {"task": task, "children": []}
        for prereq_id in task.prerequisites or []:
            child = self.build_tree(prereq_id, max_depth, current_depth + 1)
            if child is not None:
                node["children"].append(child)
        return node


def detect_cycles(graph: TaskGraph) -> List[List[str]]:
    """Detect cycles in the prerequisite graph.

    Returns:
        A list of cycles. Each cycle is a list of task ids showing the cycle path
        (e.g. ["A", "A"] for a self-reference, or ["A", "B", "C", "A"] for a 3-task cycle).
        Only ids of existing tasks are followed.
    """
    adjacency: Dict[str, List[str]] = {}
    for task in graph.get_all_tasks():
        deps: List[str] = []
        for d in task.prerequisites or []:
            if d not in deps and graph.get_task_by_id(d) is not None:
                deps.append(d)
        adjacency[task.id] = deps

    visited: Set[str] = set()      # permanently visited nodes
    stack: List[str] = []          # current DFS stack
    cycles: List[List[str]] = []
    seen_cycles: Set[Tuple[str, ...]] = set()

    def dfs(node: str) -> None:
        if node in stack:
            # back-edge -> cycle; rotate to the smallest id for dedupe
            cycle = stack[stack.index(node):]
            start = cycle.index(min(cycle))
            ordered = cycle[start:] + cycle[:start] + [cycle[start]]
            key = tuple(ordered)
            if key not in seen_cycles:
                seen_cycles.add(key)
                cycles.append(ordered)
            return
        if node in visited:
            return

        visited.add(node)
        stack.append(node)
        for neighbour in adjacency.get(node, []):
            dfs(neighbour)
        stack.pop()

    for n in list(adjacency):
        if n not in visited:
            dfs(n)

    return cycles
