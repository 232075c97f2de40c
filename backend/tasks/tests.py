from datetime import date, datetime
from unittest import mock

from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from .graph import TaskGraph, detect_cycles
from .models import Task
from .projection import advance_date, effective_end_date, ensure_date, format_time, own_contribution, task_status
from .reporting import dashboard_summary
from .repository import TaskRepository
from .scheduling import critical_path_to, project_duration

NOW = date(2026, 1, 10)


def make_task(task_id, prerequisites=None, **kwargs):
    """Unsaved Task for engine tests; defaults to a 1-day task with no dates."""
    fields = {"description": f"Task {task_id}", "team": "Chassis", "expected_time": 1, "completion_percentage": 0}
    fields.update(kwargs)
    return Task(id=task_id, prerequisites=list(prerequisites or []), **fields)


def ids(chain):
    return [t.id for t in chain]


class ProjectionTests(SimpleTestCase):
    def test_unscheduled_task_starts_tomorrow(self):
        task = make_task("A", expected_time=3)
        self.assertEqual(effective_end_date(task, NOW), date(2026, 1, 14))
        self.assertEqual(own_contribution(task, NOW), 4)

    def test_estimated_start_uses_full_expected_time(self):
        task = make_task("A", expected_time=5, estimated_start_date=date(2026, 1, 20), completion_percentage=60)
        self.assertEqual(effective_end_date(task, NOW), date(2026, 1, 25))
        self.assertEqual(own_contribution(task, NOW), 15)

    def test_started_task_counts_only_remaining_work(self):
        task = make_task("A", expected_time=10, completion_percentage=50, actual_start_date=date(2026, 1, 5))
        self.assertEqual(effective_end_date(task, NOW), date(2026, 1, 10))
        self.assertEqual(own_contribution(task, NOW), 0)

    def test_fractional_days_are_truncated(self):
        # 2.5 days remaining advances the calendar by 2
        task = make_task("A", expected_time=5, completion_percentage=50, actual_start_date=NOW)
        self.assertEqual(effective_end_date(task, NOW), date(2026, 1, 12))

    def test_over_complete_task_goes_backwards(self):
        """Percentages above 100 are not clamped; -1.5 days truncates to -1."""
        task = make_task("A", expected_time=3, completion_percentage=150, actual_start_date=NOW)
        self.assertEqual(effective_end_date(task, NOW), date(2026, 1, 9))
        self.assertEqual(own_contribution(task, NOW), 1)

    def test_past_end_date_contributes_its_distance(self):
        task = make_task("A", expected_time=2, completion_percentage=100, actual_start_date=date(2026, 1, 1))
        self.assertEqual(own_contribution(task, NOW), 9)

    def test_end_date_is_clamped_to_the_calendar(self):
        huge = make_task("A", expected_time=5_000_000)
        self.assertEqual(effective_end_date(huge, NOW), date.max)
        self.assertEqual(own_contribution(huge, NOW), (date.max - NOW).days)

        negative = make_task("B", expected_time=-5_000_000)
        self.assertEqual(effective_end_date(negative, NOW), date.min)
        self.assertEqual(own_contribution(negative, NOW), (NOW - date.min).days)

    def test_advance_date(self):
        self.assertEqual(advance_date(NOW, 2.7), date(2026, 1, 12))
        self.assertEqual(advance_date(NOW, -1.5), date(2026, 1, 9))
        self.assertEqual(advance_date(date.max, 1), date.max)
        self.assertEqual(advance_date(NOW, float("inf")), date.max)
        self.assertEqual(advance_date(NOW, float("-inf")), date.min)
        self.assertEqual(advance_date(NOW, float("nan")), NOW)

    def test_datetime_now_is_reduced_to_date(self):
        task = make_task("A", expected_time=3)
        late = datetime(2026, 1, 10, 23, 59)
        self.assertEqual(effective_end_date(task, late), effective_end_date(task, NOW))

    def test_ensure_date_accepts_strings(self):
        self.assertEqual(ensure_date("2026-01-10"), NOW)
        self.assertEqual(ensure_date("2026-01-10T08:30:00"), NOW)
        with self.assertRaises(ValueError):
            ensure_date("not a date")
        with self.assertRaises(ValueError):
            ensure_date(42)

    def test_task_status(self):
        self.assertEqual(task_status(make_task("A")), "Not Started")
        self.assertEqual(task_status(make_task("A", actual_start_date=NOW, completion_percentage=20)), "Started")
        self.assertEqual(task_status(make_task("A", completion_percentage=100)), "Completed")

    def test_format_time(self):
        self.assertEqual(format_time(0.5), "4 hours")
        self.assertEqual(format_time(0.125), "1 hour")
        self.assertEqual(format_time(1), "1 day")
        self.assertEqual(format_time(3), "3 days")
        self.assertEqual(format_time(2.5), "2d 4h")


class TaskGraphTests(SimpleTestCase):
    def setUp(self):
        self.graph = TaskGraph([
            make_task("A"),
            make_task("B", ["A"]),
            make_task("C", ["A", "ghost"]),
            make_task("D", ["B", "C"]),
        ])

    def test_prerequisites_of(self):
        self.assertEqual(self.graph.prerequisites_of("D"), ["B", "C"])
        self.assertEqual(self.graph.prerequisites_of("C"), ["A", "ghost"])
        self.assertEqual(self.graph.prerequisites_of("A"), [])
        self.assertEqual(self.graph.prerequisites_of("missing"), [])

    def test_sink_tasks(self):
        self.assertEqual(ids(self.graph.sink_tasks()), ["D"])

    def test_every_independent_task_is_a_sink(self):
        graph = TaskGraph([make_task("X"), make_task("Y"), make_task("Z", ["X"])])
        self.assertEqual(ids(graph.sink_tasks()), ["Y", "Z"])

    def test_self_reference_does_not_hide_a_sink(self):
        graph = TaskGraph([make_task("A", ["A"])])
        self.assertEqual(ids(graph.sink_tasks()), ["A"])

    def test_root_tasks(self):
        self.assertEqual(ids(self.graph.root_tasks()), ["A"])
        self.assertEqual(ids(TaskGraph([make_task("X"), make_task("Y", ["X"])]).root_tasks()), ["X"])

    def test_build_tree_skips_missing_and_respects_depth(self):
        tree = self.graph.build_tree("D")
        self.assertEqual(tree["task"].id, "D")
        self.assertEqual([c["task"].id for c in tree["children"]], ["B", "C"])
        c_node = tree["children"][1]
        self.assertEqual([c["task"].id for c in c_node["children"]], ["A"])

        shallow = self.graph.build_tree("D", max_depth=1)
        self.assertEqual(shallow["children"], [])
        self.assertIsNone(self.graph.build_tree("D", max_depth=0))
        self.assertIsNone(self.graph.build_tree("ghost"))

    def test_build_tree_terminates_on_cycles(self):
        graph = TaskGraph([make_task("A", ["B"]), make_task("B", ["A"])])
        tree = graph.build_tree("A", max_depth=3)
        self.assertEqual(tree["children"][0]["children"][0]["task"].id, "A")
        self.assertEqual(tree["children"][0]["children"][0]["children"], [])

    def test_detect_cycles(self):
        self.assertEqual(detect_cycles(self.graph), [])
        graph = TaskGraph([make_task("B", ["A"]), make_task("A", ["B"]), make_task("C", ["C"])])
        self.assertEqual(detect_cycles(graph), [["A", "B", "A"], ["C", "C"]])


class CriticalPathTests(SimpleTestCase):
    def test_task_without_prerequisites(self):
        task = make_task("A", expected_time=3)
        duration, chain = critical_path_to(TaskGraph([task]), "A", NOW)
        self.assertEqual(chain, [task])
        self.assertEqual(duration, own_contribution(task, NOW))

    def test_missing_task_is_empty(self):
        self.assertEqual(critical_path_to(TaskGraph([]), "nope", NOW), (0, []))

    def test_completed_prerequisite_then_unstarted_task(self):
        a = make_task("A", expected_time=2, completion_percentage=100, actual_start_date=date(2026, 1, 1))
        b = make_task("B", ["A"], expected_time=3)
        graph = TaskGraph([a, b])

        self.assertEqual(ids(graph.sink_tasks()), ["B"])
        duration, chain = critical_path_to(graph, "B", NOW)
        self.assertEqual(ids(chain), ["A", "B"])
        self.assertEqual(duration, own_contribution(a, NOW) + own_contribution(b, NOW))
        self.assertEqual(duration, 13)

    def test_ties_keep_first_prerequisite(self):
        tasks = [make_task("B", expected_time=3), make_task("C", expected_time=3)]
        first = TaskGraph(tasks + [make_task("D", ["B", "C"])])
        second = TaskGraph(tasks + [make_task("D", ["C", "B"])])

        self.assertEqual(ids(critical_path_to(first, "D", NOW).chain), ["B", "D"])
        self.assertEqual(ids(critical_path_to(second, "D", NOW).chain), ["C", "D"])

    def test_longest_prerequisite_wins(self):
        graph = TaskGraph([
            make_task("A", expected_time=2),       # 3 days
            make_task("B", ["A"], expected_time=1),  # 2 days
            make_task("C", ["A"], expected_time=4),  # 5 days
            make_task("D", ["B", "C"], expected_time=1),
        ])
        duration, chain = critical_path_to(graph, "D", NOW)
        self.assertEqual(ids(chain), ["A", "C", "D"])
        self.assertEqual(duration, 10)

    def test_diamond_recomputes_shared_prerequisite(self):
        a = make_task("A", expected_time=2)
        graph = TaskGraph([a, make_task("B", ["A"]), make_task("C", ["A"]), make_task("D", ["B", "C"])])

        with mock.patch("tasks.scheduling.own_contribution", wraps=own_contribution) as spy:
            critical_path_to(graph, "D", NOW)

        a_results = [own_contribution(*c.args) for c in spy.call_args_list if c.args[0] is a]
        self.assertEqual(len(a_results), 2)
        self.assertEqual(a_results[0], a_results[1])

    def test_two_task_cycle_terminates(self):
        graph = TaskGraph([make_task("A", ["B"]), make_task("B", ["A"])])
        duration, chain = critical_path_to(graph, "A", NOW)
        self.assertEqual(ids(chain), ["B", "A"])
        self.assertEqual(duration, 4)

    def test_self_reference_is_ignored(self):
        graph = TaskGraph([make_task("A", ["A"], expected_time=3)])
        self.assertEqual(ids(critical_path_to(graph, "A", NOW).chain), ["A"])

    def test_dangling_prerequisite_contributes_nothing(self):
        graph = TaskGraph([make_task("B", ["ghost"], expected_time=3)])
        self.assertEqual(critical_path_to(graph, "B", NOW), (4, [graph.get_task_by_id("B")]))

    def test_zero_length_prerequisite_is_left_off_the_chain(self):
        graph = TaskGraph([
            make_task("A", expected_time=10, completion_percentage=50, actual_start_date=date(2026, 1, 5)),
            make_task("B", ["A"], expected_time=3),
        ])
        duration, chain = critical_path_to(graph, "B", NOW)
        self.assertEqual(ids(chain), ["B"])
        self.assertEqual(duration, 4)

    def test_ancestors_are_not_shared_between_siblings(self):
        # C sits below both B1 and B2; a shared visited set would drop the second visit
        graph = TaskGraph([
            make_task("C", expected_time=5),
            make_task("B1", ["C"], expected_time=1),
            make_task("B2", ["C"], expected_time=2),
            make_task("D", ["B1", "B2"]),
        ])
        self.assertEqual(ids(critical_path_to(graph, "D", NOW).chain), ["C", "B2", "D"])


class ProjectDurationTests(SimpleTestCase):
    def test_empty_project(self):
        self.assertEqual(project_duration(TaskGraph([]), NOW), {"days": 0, "criticalPath": []})

    def test_longest_sink_wins(self):
        graph = TaskGraph([
            make_task("A", expected_time=2),
            make_task("B", ["A"], expected_time=3),
            make_task("X", expected_time=5),
        ])
        self.assertEqual(project_duration(graph, NOW), {"days": 7, "criticalPath": ["A", "B"]})

    def test_tied_sinks_keep_first(self):
        graph = TaskGraph([make_task("X", expected_time=3), make_task("Y", expected_time=3)])
        self.assertEqual(project_duration(graph, NOW), {"days": 4, "criticalPath": ["X"]})

    def test_pure_cycle_has_no_sinks(self):
        graph = TaskGraph([make_task("A", ["B"]), make_task("B", ["A"])])
        self.assertEqual(project_duration(graph, NOW), {"days": 0, "criticalPath": []})

    def test_result_moves_with_now(self):
        graph = TaskGraph([make_task("A", expected_time=2, estimated_start_date=date(2026, 2, 1))])
        self.assertEqual(project_duration(graph, NOW)["days"], 24)
        self.assertEqual(project_duration(graph, date(2026, 1, 20))["days"], 14)

    def test_out_of_calendar_tasks_still_schedule(self):
        graph = TaskGraph([
            make_task("A", expected_time=5_000_000),
            make_task("B", ["A"], expected_time=-5_000_000),
        ])
        result = project_duration(graph, NOW)
        self.assertEqual(result["criticalPath"], ["A", "B"])
        self.assertEqual(result["days"], (date.max - NOW).days + (NOW - date.min).days)


class DashboardSummaryTests(SimpleTestCase):
    def test_counts(self):
        graph = TaskGraph([
            make_task("A", team="Chassis", completion_percentage=100),
            make_task("B", ["A"], team="Chassis", actual_start_date=NOW, completion_percentage=40),
            make_task("C", team="Elec"),
            make_task("D", team="Paint"),
        ])
        summary = dashboard_summary(graph, NOW, ["Chassis", "Elec"])

        self.assertEqual(summary["totalTasks"], 4)
        self.assertEqual(summary["completedTasks"], 1)
        self.assertEqual(summary["incompleteTasks"], 3)
        self.assertEqual(summary["teams"], [
            {"team": "Chassis", "total": 2, "completed": 1},
            {"team": "Elec", "total": 1, "completed": 0},
        ])
        self.assertEqual(summary["status"], {"Not Started": 3, "Started": 1, "Completed": 1})
        self.assertEqual(summary["projectDuration"], project_duration(graph, NOW))
        self.assertEqual(summary["cycles"], [])


class TaskRepositoryTests(TestCase):
    def setUp(self):
        self.repo = TaskRepository()

    def _create(self, description, prerequisites=None, **kwargs):
        data = {"description": description, "team": "Chassis", "expected_time": 1, "prerequisites": prerequisites or []}
        data.update(kwargs)
        return self.repo.create_task(data)

    def test_create_assigns_id_and_defaults(self):
        task = self._create("Design chassis frame", prerequisites=None)
        self.assertTrue(task.id.startswith("task-"))
        self.assertEqual(len(task.id), 14)
        self.assertEqual(task.completion_percentage, 0)
        self.assertEqual(task.people_involved, [])
        self.assertIsNotNone(task.created_at)
        self.assertEqual(self.repo.get_task_by_id(task.id), task)

    def test_ids_are_unique(self):
        created = {self._create(f"T{i}").id for i in range(20)}
        self.assertEqual(len(created), 20)

    def test_update_refreshes_timestamp(self):
        task = self._create("Suspension geometry")
        before = task.updated_at
        updated = self.repo.update_task(task.id, {"completion_percentage": 40, "id": "hijack"})
        self.assertEqual(updated.id, task.id)
        self.assertEqual(updated.completion_percentage, 40)
        self.assertGreaterEqual(updated.updated_at, before)
        self.assertIsNone(self.repo.update_task("task-missing", {"team": "Elec"}))

    def test_delete_cascades_to_prerequisites(self):
        a = self._create("A")
        b = self._create("B", [a.id])
        c = self._create("C", [a.id, b.id, a.id])
        d = self._create("D", ["task-ghost"])

        self.assertTrue(self.repo.delete_task(a.id))
        self.assertIsNone(self.repo.get_task_by_id(a.id))
        self.assertEqual(self.repo.get_task_by_id(b.id).prerequisites, [])
        self.assertEqual(self.repo.get_task_by_id(c.id).prerequisites, [b.id])
        # pre-existing dangling ids are left alone
        self.assertEqual(self.repo.get_task_by_id(d.id).prerequisites, ["task-ghost"])
        self.assertFalse(self.repo.delete_task(a.id))

    def test_snapshot_keeps_creation_order(self):
        a = self._create("A")
        b = self._create("B", [a.id])
        graph = self.repo.snapshot()
        self.assertEqual(ids(graph.get_all_tasks()), [a.id, b.id])
        self.assertEqual(ids(graph.sink_tasks()), [b.id])


class TaskApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.repo = TaskRepository()

    def _post(self, **overrides):
        payload = {"description": "Develop suspension geometry", "team": "Suspension", "expectedTime": 30,
                   "workingLocation": "Any"}
        payload.update(overrides)
        return self.client.post("/api/tasks/", payload, format="json")

    def test_create_and_read(self):
        resp = self._post(peopleInvolved=["Ana", "Li"], estimatedStartDate="2026-02-01")
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertTrue(body["id"].startswith("task-"))
        self.assertEqual(body["completionPercentage"], 0)
        self.assertEqual(body["prerequisites"], [])
        self.assertEqual(body["peopleInvolved"], ["Ana", "Li"])
        self.assertEqual(body["estimatedStartDate"], "2026-02-01")
        self.assertIsNone(body["actualStartDate"])
        self.assertEqual(body["status"], "Not Started")
        self.assertEqual(body["expectedTimeDisplay"], "30 days")

        fetched = self.client.get(f"/api/tasks/{body['id']}/")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json()["description"], "Develop suspension geometry")

    def test_create_requires_core_fields(self):
        resp = self.client.post("/api/tasks/", {"team": "Elec"}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("description", resp.json())
        self.assertIn("expectedTime", resp.json())

    def test_out_of_range_values_are_accepted(self):
        resp = self._post(completionPercentage=150, expectedTime=-2)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["completionPercentage"], 150)

    def test_null_completion_means_zero(self):
        resp = self._post(completionPercentage=None)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["completionPercentage"], 0)

        task_id = resp.json()["id"]
        self.client.patch(f"/api/tasks/{task_id}/", {"completionPercentage": 60}, format="json")
        cleared = self.client.patch(f"/api/tasks/{task_id}/", {"completionPercentage": None}, format="json")
        self.assertEqual(cleared.status_code, 200)
        self.assertEqual(cleared.json()["completionPercentage"], 0)

    def test_huge_expected_time_does_not_break_scheduling(self):
        self._post(expectedTime=5000000)
        self._post(expectedTime=-5000000)
        for url in ("/api/project/duration/", "/api/dashboard/"):
            resp = self.client.get(url, {"as_of": "2026-01-10"})
            self.assertEqual(resp.status_code, 200)

    def test_list_filters(self):
        self._post(team="Chassis", workingLocation="On site")
        self._post(team="Chassis", workingLocation="Any")
        self._post(team="Elec", workingLocation="On site")

        self.assertEqual(len(self.client.get("/api/tasks/").json()), 3)
        self.assertEqual(len(self.client.get("/api/tasks/", {"team": "Chassis"}).json()), 2)
        filtered = self.client.get("/api/tasks/", {"team": "Chassis", "location": "On site"}).json()
        self.assertEqual(len(filtered), 1)

    def test_recent_tasks(self):
        first = self._post(description="first").json()
        last = self._post(description="last").json()
        resp = self.client.get("/api/tasks/recent/", {"limit": 1})
        self.assertEqual([t["id"] for t in resp.json()], [last["id"]])
        self.assertNotEqual(first["id"], last["id"])
        self.assertEqual(self.client.get("/api/tasks/recent/", {"limit": "x"}).status_code, 400)

    def test_patch_and_put(self):
        task_id = self._post().json()["id"]
        resp = self.client.patch(f"/api/tasks/{task_id}/", {"completionPercentage": 25,
                                                           "actualStartDate": "2026-01-05"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["completionPercentage"], 25)
        self.assertEqual(resp.json()["status"], "Started")

        bad_put = self.client.put(f"/api/tasks/{task_id}/", {"team": "Elec"}, format="json")
        self.assertEqual(bad_put.status_code, 400)

        put = self.client.put(f"/api/tasks/{task_id}/", {"description": "Rewire", "team": "Elec",
                                                        "expectedTime": 4}, format="json")
        self.assertEqual(put.status_code, 200)
        self.assertEqual(put.json()["team"], "Elec")
        self.assertEqual(put.json()["id"], task_id)

    def test_unknown_task_is_404(self):
        self.assertEqual(self.client.get("/api/tasks/task-nothere/").status_code, 404)
        self.assertEqual(self.client.patch("/api/tasks/task-nothere/", {}, format="json").status_code, 404)
        self.assertEqual(self.client.delete("/api/tasks/task-nothere/").status_code, 404)
        self.assertEqual(self.client.get("/api/tasks/task-nothere/tree/").status_code, 404)

    def test_delete_unlinks_dependents(self):
        a = self._post(description="A").json()["id"]
        b = self._post(description="B", prerequisites=[a]).json()["id"]

        self.assertEqual(self.client.delete(f"/api/tasks/{a}/").status_code, 204)
        self.assertEqual(self.client.get(f"/api/tasks/{b}/").json()["prerequisites"], [])

    def test_tree(self):
        a = self._post(description="A").json()["id"]
        b = self._post(description="B", prerequisites=[a, "task-ghost"]).json()["id"]

        tree = self.client.get(f"/api/tasks/{b}/tree/").json()
        self.assertEqual(tree["task"]["id"], b)
        self.assertEqual([c["task"]["id"] for c in tree["children"]], [a])

        shallow = self.client.get(f"/api/tasks/{b}/tree/", {"depth": 1}).json()
        self.assertEqual(shallow["children"], [])
        self.assertEqual(self.client.get(f"/api/tasks/{b}/tree/", {"depth": 0}).status_code, 400)

    def test_root_trees(self):
        a = self._post(description="A").json()["id"]
        self._post(description="B", prerequisites=[a])
        c = self._post(description="C").json()["id"]

        resp = self.client.get("/api/tasks/roots/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([tree["task"]["id"] for tree in resp.json()], [a, c])
        self.assertEqual([tree["children"] for tree in resp.json()], [[], []])
        self.assertEqual(self.client.get("/api/tasks/roots/", {"depth": "deep"}).status_code, 400)

    def test_project_duration(self):
        a = self._post(description="A", expectedTime=2, completionPercentage=100,
                       actualStartDate="2026-01-01").json()["id"]
        b = self._post(description="B", expectedTime=3, prerequisites=[a]).json()["id"]

        resp = self.client.get("/api/project/duration/", {"as_of": "2026-01-10"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"days": 13, "criticalPath": [a, b]})

        single = self.client.get(f"/api/tasks/{a}/critical-path/", {"as_of": "2026-01-10"})
        self.assertEqual(single.json(), {"days": 9, "criticalPath": [a]})

    def test_project_duration_empty(self):
        resp = self.client.get("/api/project/duration/")
        self.assertEqual(resp.json(), {"days": 0, "criticalPath": []})

    def test_invalid_as_of(self):
        resp = self.client.get("/api/project/duration/", {"as_of": "soon"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("as_of", resp.json())

    @override_settings(PLANNER_TEAMS=["Suspension", "Elec"])
    def test_dashboard(self):
        a = self._post(completionPercentage=100).json()["id"]
        b = self._post(team="Elec", prerequisites=[a], expectedTime=1).json()["id"]

        body = self.client.get("/api/dashboard/", {"as_of": "2026-01-10"}).json()
        self.assertEqual(body["totalTasks"], 2)
        self.assertEqual(body["completedTasks"], 1)
        self.assertEqual(body["teams"], [
            {"team": "Suspension", "total": 1, "completed": 1},
            {"team": "Elec", "total": 1, "completed": 0},
        ])
        # 30 days starting tomorrow, then 1 day starting tomorrow
        self.assertEqual(body["projectDuration"], {"days": 33, "criticalPath": [a, b]})
        self.assertEqual(body["cycles"], [])
