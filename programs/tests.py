"""Tests for program instance resolution, distribution, member sync and template sync."""
import math
from datetime import date
from unittest import mock

from django.db import IntegrityError, transaction
from django.test import TestCase

from accounts.models import Organization, User
from api.serializers_programs import DayUpdateSerializer
from programs.exceptions import CohortNotFound, TemplateSyncNotAllowed, WeekNotFound
from programs.models import ClientProgramWeek, Program, ProgramCohort, ProgramEnrollment, ProgramInstance, ProgramWeek
from programs.services.distribution import assign_tasks_to_days, distribute_week_tasks, normalize_distribution, spread_counts
from programs.services.habits import normalize_habit_templates, sync_program_habits
from programs.services.instances import resolve_cohort_instance, resolve_enrollment_instance
from programs.services.member_sync import sync_day_tasks_to_user, sync_instance_to_members
from programs.services.task_templates import normalize_task_templates
from programs.services.template_sync import TemplateSyncOptions, sync_template_to_clients, sync_template_to_cohort
from programs.services.week_content import find_week_index, get_week_content, update_instance_day, update_week_content
from programs.tasks import resync_cohort_member_tasks
from tracker.models import Task


def make_week(number, **extra):
    week = {
        "id": f"week-{number}",
        "week_number": number,
        "name": f"Week {number}",
        "theme": "Momentum",
        "weekly_tasks": [],
    }
    week.update(extra)
    return week


class ProgramFixturesMixin:
    """Organization, a group program with one cohort, and two active members."""

    @classmethod
    def setUpTestData(cls):
        cls.org = Organization.objects.create(name="Acme Coaching", slug="acme")
        cls.coach = User.objects.create_user(email="coach@example.com", password="pw")
        cls.member_a = User.objects.create_user(email="a@example.com", password="pw")
        cls.member_b = User.objects.create_user(email="b@example.com", password="pw")
        cls.program = Program.objects.create(
            organization=cls.org,
            name="Spring Reset",
            program_type="group",
            length_days=14,
            include_weekends=True,
            weeks=[make_week(1), make_week(2)],
        )
        cls.cohort = ProgramCohort.objects.create(
            program=cls.program,
            organization=cls.org,
            name="March",
            start_date=date(2026, 3, 2),
            end_date=date(2026, 3, 15),
            status="active",
        )
        for user in (cls.member_a, cls.member_b):
            ProgramEnrollment.objects.create(
                user=user, program=cls.program, organization=cls.org, cohort=cls.cohort, status="active"
            )

    def distribute(self, tasks, distribution="first_day", week_ref="1"):
        return update_week_content(self.program, self.cohort, week_ref, {
            "weekly_tasks": tasks,
            "distribution": distribution,
            "distribute_tasks_now": True,
        })

    def member_tasks(self, user):
        return Task.objects.filter(user=user, instance__cohort=self.cohort).order_by("day_index", "instance_task_id")


class DistributionTests(TestCase):
    """Tests for the week-to-day fan-out."""

    def test_spread_counts_example(self):
        self.assertEqual(spread_counts(7, 5), [2, 2, 1, 1, 1])

    def test_spread_total_and_bound(self):
        """Test every task lands somewhere and no day exceeds ceil(tasks / days)."""
        for task_count in range(0, 25):
            for day_count in range(1, 8):
                counts = spread_counts(task_count, day_count)
                self.assertEqual(len(counts), day_count)
                self.assertEqual(sum(counts), task_count)
                self.assertLessEqual(max(counts), math.ceil(task_count / day_count))

    def test_normalize_distribution_aliases(self):
        self.assertEqual(normalize_distribution("repeat-daily"), "all_days")
        self.assertEqual(normalize_distribution("all_days"), "all_days")
        self.assertEqual(normalize_distribution("first_day"), "first_day")
        self.assertEqual(normalize_distribution(None), "spread")
        self.assertEqual(normalize_distribution("weekly"), "spread")

    def _week(self, day_count, day_tasks=None):
        days = [{"day_index": i + 1, "tasks": [], "habits": []} for i in range(day_count)]
        if day_tasks:
            days[0]["tasks"] = day_tasks
        return {"week_number": 1, "days": days}

    def test_spread_keeps_template_order(self):
        tasks = [{"id": str(i), "label": f"Task {i}"} for i in range(3)]
        week = distribute_week_tasks(self._week(2), tasks, "spread")
        self.assertEqual([t["id"] for t in week["days"][0]["tasks"]], ["0", "1"])
        self.assertEqual([t["id"] for t in week["days"][1]["tasks"]], ["2"])

    def test_all_days_copies_every_task(self):
        tasks = [{"id": "a", "label": "A"}, {"id": "b", "label": "B"}]
        week = distribute_week_tasks(self._week(3), tasks, "repeat-daily")
        for day in week["days"]:
            self.assertEqual([t["id"] for t in day["tasks"]], ["a", "b"])
            self.assertTrue(all(t["source"] == "week" for t in day["tasks"]))

    def test_first_day_only(self):
        tasks = [{"id": "a", "label": "A"}]
        week = distribute_week_tasks(self._week(3), tasks, "first_day")
        self.assertEqual(len(week["days"][0]["tasks"]), 1)
        self.assertEqual(week["days"][1]["tasks"], [])

    def test_redistribution_replaces_week_tasks_and_keeps_others(self):
        """Test coach-added day tasks survive while old week tasks are replaced."""
        coach_task = {"id": "day-1", "label": "Kickoff call", "source": "day"}
        old_week_task = {"id": "old", "label": "Old", "source": "week"}
        week = distribute_week_tasks(self._week(2, [coach_task, old_week_task]), [{"id": "new", "label": "New"}], "first_day")
        self.assertEqual([t["id"] for t in week["days"][0]["tasks"]], ["day-1", "new"])

    def test_day_task_reusing_template_id_is_replaced(self):
        """Test a day task carrying a week template's id does not duplicate that template."""
        stale = {"id": "a", "label": "A (old copy)", "source": "day"}
        week = distribute_week_tasks(self._week(2, [stale]), [{"id": "a", "label": "A"}], "first_day")
        self.assertEqual(week["days"][0]["tasks"], [{"id": "a", "label": "A", "source": "week"}])

    def test_daily_tag_overrides_week_policy(self):
        """Test a daily-tagged task repeats on every day while untagged tasks follow first_day."""
        tasks = [{"id": "d", "label": "Hydrate", "day_tag": "daily"}, {"id": "x", "label": "Plan"}]
        week = distribute_week_tasks(self._week(5), tasks, "first_day")

        self.assertEqual([t["id"] for t in week["days"][0]["tasks"]], ["d", "x"])
        for day in week["days"][1:]:
            self.assertEqual([t["id"] for t in day["tasks"]], ["d"])

    def test_numeric_day_tags(self):
        """Test numeric day tags pin tasks to 1-based days; out-of-range tags fall back to the policy."""
        tasks = [
            {"id": "n", "day_tag": 3},
            {"id": "m", "day_tag": ["2", "5"]},
            {"id": "o", "day_tag": 9},
        ]
        assigned = assign_tasks_to_days(tasks, 5, "first_day")
        self.assertEqual([[t["id"] for t in day] for day in assigned], [["o"], ["m"], ["n"], [], ["m"]])

    def test_spread_tag_spreads_regardless_of_policy(self):
        tasks = [{"id": "s1", "day_tag": "spread"}, {"id": "s2", "day_tag": "spread"}, {"id": "a", "day_tag": "auto"}]
        assigned = assign_tasks_to_days(tasks, 2, "all_days")
        self.assertEqual([[t["id"] for t in day] for day in assigned], [["s1", "a"], ["s2", "a"]])

    def test_per_day_order_groups_tags(self):
        """Test each day lists daily, then day-specific, then spread-tagged, then policy-placed tasks."""
        tasks = [
            {"id": "auto"},
            {"id": "spread", "day_tag": "spread"},
            {"id": "first", "day_tag": "1"},
            {"id": "daily", "day_tag": "daily"},
        ]
        assigned = assign_tasks_to_days(tasks, 1, "spread")
        self.assertEqual([t["id"] for t in assigned[0]], ["daily", "first", "spread", "auto"])

    def test_input_week_is_not_mutated(self):
        original = self._week(2)
        distribute_week_tasks(original, [{"id": "a", "label": "A"}], "all_days")
        self.assertEqual(original["days"][0]["tasks"], [])


class TaskTemplateTests(TestCase):

    def test_normalize_assigns_ids_and_strips_runtime_fields(self):
        tasks = normalize_task_templates([
            {"id": "keep", "label": "A", "completed": True, "completedAt": "2026-03-02"},
            {"label": "B", "completed_at": "2026-03-02"},
        ])
        self.assertEqual(tasks[0]["id"], "keep")
        self.assertNotIn("completed", tasks[0])
        self.assertNotIn("completedAt", tasks[0])
        self.assertTrue(tasks[1]["id"])
        self.assertNotIn("completed_at", tasks[1])

    def test_normalize_non_list(self):
        self.assertEqual(normalize_task_templates(None), [])


class InstanceResolutionTests(ProgramFixturesMixin, TestCase):
    """Tests for lazy cohort instance creation."""

    def test_creates_instance_from_embedded_weeks(self):
        instance = resolve_cohort_instance(self.program, self.cohort)

        self.assertEqual(instance.instance_type, "cohort")
        self.assertEqual(len(instance.weeks), 2)
        first, second = instance.weeks
        self.assertEqual((first["start_day_index"], first["end_day_index"]), (1, 7))
        self.assertEqual((second["start_day_index"], second["end_day_index"]), (8, 14))
        self.assertEqual(len(first["days"]), 7)
        self.assertEqual(first["days"][0], {"day_index": 1, "calendar_date": "2026-03-02", "tasks": [], "habits": []})

    def test_second_resolution_returns_same_instance(self):
        first = resolve_cohort_instance(self.program, self.cohort)
        second = resolve_cohort_instance(self.program, self.cohort)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(ProgramInstance.objects.filter(cohort=self.cohort).count(), 1)

    def test_duplicate_cohort_instance_rejected_by_database(self):
        resolve_cohort_instance(self.program, self.cohort)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                ProgramInstance.objects.create(
                    program=self.program, organization=self.org, instance_type="cohort", cohort=self.cohort
                )

    def test_falls_back_to_template_week_rows(self):
        program = Program.objects.create(organization=self.org, name="Legacy", include_weekends=False, length_days=10)
        ProgramWeek.objects.create(program=program, organization=self.org, week_number=2, name="Second")
        ProgramWeek.objects.create(
            program=program, organization=self.org, week_number=1, name="First",
            weekly_tasks=[{"label": "Plan the week", "completed": True}],
        )
        cohort = ProgramCohort.objects.create(
            program=program, organization=self.org, name="Weekday run",
            start_date=date(2026, 3, 6), end_date=date(2026, 3, 19),
        )

        instance = resolve_cohort_instance(program, cohort)

        self.assertEqual([w["name"] for w in instance.weeks], ["First", "Second"])
        self.assertEqual(len(instance.weeks[0]["days"]), 5)
        self.assertEqual(instance.weeks[0]["days"][1]["calendar_date"], "2026-03-09")
        task = instance.weeks[0]["weekly_tasks"][0]
        self.assertTrue(task["id"])
        self.assertNotIn("completed", task)

    def test_cohort_from_other_program(self):
        other = Program.objects.create(organization=self.org, name="Other")
        with self.assertRaises(CohortNotFound):
            resolve_cohort_instance(other, self.cohort)

    def test_enrollment_instance(self):
        program = Program.objects.create(
            organization=self.org, name="1:1", program_type="individual", weeks=[make_week(1)], length_days=7
        )
        enrollment = ProgramEnrollment.objects.create(
            user=self.member_a, program=program, organization=self.org, status="active", started_at=date(2026, 3, 2)
        )
        instance = resolve_enrollment_instance(program, enrollment)
        self.assertEqual(instance.instance_type, "individual")
        self.assertEqual(resolve_enrollment_instance(program, enrollment).pk, instance.pk)


class MemberSyncTests(ProgramFixturesMixin, TestCase):
    """Tests for reconciling members' tasks with day templates."""

    TASKS = [
        {"id": "a", "label": "A", "estimated_minutes": 10},
        {"id": "b", "label": "B", "is_primary": True},
        {"id": "c", "label": "C"},
    ]

    def test_first_day_example(self):
        """Test 3 tasks, 2 members, first_day: each member gets 3 open tasks on day 1."""
        result = self.distribute(self.TASKS)

        self.assertEqual(result.member_sync.created, 6)
        self.assertEqual(result.member_sync.members_processed, 2)
        for user in (self.member_a, self.member_b):
            tasks = self.member_tasks(user)
            self.assertEqual(tasks.count(), 3)
            self.assertTrue(all(t.day_index == 1 for t in tasks))
            self.assertFalse(any(t.completed for t in tasks))
            self.assertTrue(all(t.date == date(2026, 3, 2) for t in tasks))
        self.assertEqual(self.member_tasks(self.member_a).get(instance_task_id="b").list_type, "focus")
        self.assertEqual(self.member_tasks(self.member_a).get(instance_task_id="a").list_type, "backlog")

    def test_second_sync_is_a_no_op(self):
        self.distribute(self.TASKS, distribution="spread")
        instance = ProgramInstance.objects.get(cohort=self.cohort)
        before = set(Task.objects.values_list("pk", "updated_at"))

        counts = sync_instance_to_members(instance)

        self.assertEqual(counts.changed, 0)
        self.assertEqual(counts.unchanged, 6)
        self.assertEqual(set(Task.objects.values_list("pk", "updated_at")), before)

    def test_completion_survives_label_and_estimate_change(self):
        self.distribute(self.TASKS)
        task = self.member_tasks(self.member_a).get(instance_task_id="a")
        task.set_completed(True)
        completed_at = task.completed_at

        edited = [dict(self.TASKS[0], label="A (revised)", estimated_minutes=25)] + self.TASKS[1:]
        result = self.distribute(edited)

        self.assertEqual(result.member_sync.updated, 2)
        task.refresh_from_db()
        self.assertEqual(task.label, "A (revised)")
        self.assertEqual(task.estimated_minutes, 25)
        self.assertTrue(task.completed)
        self.assertEqual(task.completed_at, completed_at)

    def test_removed_template_deletes_only_its_tasks(self):
        self.distribute(self.TASKS)
        own_task = Task.objects.create(user=self.member_a, organization=self.org, label="Personal", source="user")
        survivors = set(Task.objects.exclude(instance_task_id="c").values_list("pk", flat=True))

        result = self.distribute(self.TASKS[:2])

        self.assertEqual(result.member_sync.deleted, 2)
        self.assertFalse(Task.objects.filter(instance_task_id="c").exists())
        self.assertEqual(set(Task.objects.values_list("pk", flat=True)), survivors)
        self.assertTrue(Task.objects.filter(pk=own_task.pk).exists())

    def test_edited_day_keeps_week_tasks_replaceable(self):
        """Test week tasks saved back through the day editor are still replaced by redistribution."""
        self.distribute(self.TASKS)
        instance = ProgramInstance.objects.get(cohort=self.cohort)
        day = instance.weeks[0]["days"][0]
        serializer = DayUpdateSerializer(data={"tasks": day["tasks"] + [{"label": "D"}]})
        self.assertTrue(serializer.is_valid(), serializer.errors)
        day, _counts = update_instance_day(instance, 1, serializer.validated_data)
        self.assertEqual([t["source"] for t in day["tasks"]], ["week", "week", "week", "day"])

        result = self.distribute(self.TASKS[:2])

        day_tasks = result.week["days"][0]["tasks"]
        ids = [t["id"] for t in day_tasks]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertNotIn("c", ids)
        self.assertEqual([t["label"] for t in day_tasks], ["D", "A", "B"])
        for user in (self.member_a, self.member_b):
            tasks = self.member_tasks(user)
            self.assertFalse(tasks.filter(instance_task_id="c").exists())
            self.assertEqual(tasks.count(), 3)
            self.assertTrue(tasks.filter(label="D").exists())

    def test_inactive_enrollments_are_skipped(self):
        ProgramEnrollment.objects.filter(user=self.member_b).update(status="stopped")
        self.distribute(self.TASKS)
        self.assertEqual(self.member_tasks(self.member_b).count(), 0)
        self.assertEqual(self.member_tasks(self.member_a).count(), 3)

    def test_cohort_without_members_is_a_no_op(self):
        ProgramEnrollment.objects.filter(cohort=self.cohort).delete()
        result = self.distribute(self.TASKS)
        self.assertEqual(result.member_sync.members_processed, 0)
        self.assertFalse(Task.objects.exists())

    def test_sync_day_tasks_to_user_direct(self):
        instance = resolve_cohort_instance(self.program, self.cohort)
        counts = sync_day_tasks_to_user(
            instance=instance, user_id=self.member_a.pk, day_index=3,
            tasks=[{"id": "x", "label": "X"}, {"id": "x", "label": "Duplicate"}], calendar_date="2026-03-04",
        )
        self.assertEqual(counts.created, 1)
        task = Task.objects.get(user=self.member_a, day_index=3)
        self.assertEqual(task.label, "X")
        self.assertEqual(task.source, "program")
        self.assertEqual(task.date, date(2026, 3, 4))


class WeekContentTests(ProgramFixturesMixin, TestCase):
    """Tests for coach edits to cohort weeks."""

    def test_only_sent_fields_change(self):
        result = update_week_content(self.program, self.cohort, "1", {"manual_notes": "  Call recap  ", "theme": ""})

        self.assertFalse(result.distributed)
        self.assertIsNone(result.member_sync)
        week = ProgramInstance.objects.get(cohort=self.cohort).weeks[0]
        self.assertEqual(week["manual_notes"], "Call recap")
        self.assertIsNone(week["theme"])
        self.assertEqual(week["name"], "Week 1")
        self.assertTrue(week["has_local_changes"])
        self.assertFalse(Task.objects.exists())

    def test_week_found_by_id(self):
        update_week_content(self.program, self.cohort, "week-2", {"weekly_prompt": "What changed?"})
        instance, week = get_week_content(self.program, self.cohort, 2)
        self.assertEqual(week["weekly_prompt"], "What changed?")

    def test_number_is_tried_before_id(self):
        weeks = [{"id": "2", "week_number": 1}, {"id": "x", "week_number": 2}]
        self.assertEqual(find_week_index(weeks, "2"), 1)
        self.assertEqual(find_week_index(weeks, "x"), 1)
        self.assertIsNone(find_week_index(weeks, "9"))

    def test_missing_week(self):
        with self.assertRaises(WeekNotFound):
            update_week_content(self.program, self.cohort, "9", {"name": "Nope"})

    def test_distribution_falls_back_to_program_setting(self):
        Program.objects.filter(pk=self.program.pk).update(task_distribution="repeat-daily")
        self.program.refresh_from_db()
        result = update_week_content(self.program, self.cohort, "1", {
            "weekly_tasks": [{"label": "Walk"}],
            "distribute_tasks_now": True,
        })
        self.assertTrue(all(len(day["tasks"]) == 1 for day in result.week["days"]))
        self.assertEqual(self.member_tasks(self.member_a).count(), 7)

    def test_member_sync_failure_keeps_saved_week(self):
        with mock.patch("programs.services.week_content.sync_days_to_members", side_effect=RuntimeError("db down")):
            result = self.distribute([{"id": "a", "label": "A"}])

        self.assertEqual(result.member_sync_error, "db down")
        week = ProgramInstance.objects.get(cohort=self.cohort).weeks[0]
        self.assertEqual(week["days"][0]["tasks"][0]["id"], "a")

    def test_update_instance_day(self):
        instance = resolve_cohort_instance(self.program, self.cohort)
        day, counts = update_instance_day(instance, 9, {"tasks": [{"label": "Check in", "is_primary": True}]})

        self.assertEqual(day["day_index"], 9)
        self.assertEqual(day["tasks"][0]["source"], "day")
        self.assertEqual(counts.created, 2)
        task = self.member_tasks(self.member_b).get()
        self.assertEqual(task.day_index, 9)
        self.assertEqual(task.date, date(2026, 3, 10))


class ResyncTaskTests(ProgramFixturesMixin, TestCase):

    @mock.patch("programs.tasks.cohort_sync_lock")
    def test_resync_recreates_missing_tasks(self, lock):
        lock.return_value.__enter__.return_value = True
        self.distribute([{"id": "a", "label": "A"}])
        Task.objects.filter(user=self.member_b).delete()
        instance = ProgramInstance.objects.get(cohort=self.cohort)

        result = resync_cohort_member_tasks(instance.pk)

        self.assertEqual(result["status"], "success")
        self.assertEqual(result["created"], 1)
        self.assertEqual(self.member_tasks(self.member_b).count(), 1)

    @mock.patch("programs.tasks.cohort_sync_lock")
    def test_resync_skipped_when_locked(self, lock):
        lock.return_value.__enter__.return_value = False
        instance = resolve_cohort_instance(self.program, self.cohort)
        self.assertEqual(resync_cohort_member_tasks(instance.pk)["status"], "skipped")


class TemplateSyncTests(TestCase):
    """Tests for pushing individual program templates to client weeks."""

    @classmethod
    def setUpTestData(cls):
        cls.org = Organization.objects.create(name="Acme Coaching", slug="acme")
        cls.client_a = User.objects.create_user(email="client-a@example.com", password="pw")
        cls.client_b = User.objects.create_user(email="client-b@example.com", password="pw")
        cls.program = Program.objects.create(
            organization=cls.org,
            name="1:1 Coaching",
            program_type="individual",
            weeks=[
                make_week(
                    1, module_id="m1", order=1, start_day_index=1, end_day_index=7,
                    weekly_tasks=[{"id": "t1", "label": "Read"}],
                    manual_notes="Template notes", notes=["Intro"],
                ),
                make_week(2, module_id="m1", order=2, start_day_index=8, end_day_index=14),
            ],
        )
        cls.enrollment_a = ProgramEnrollment.objects.create(
            user=cls.client_a, program=cls.program, organization=cls.org, status="active"
        )
        cls.enrollment_b = ProgramEnrollment.objects.create(
            user=cls.client_b, program=cls.program, organization=cls.org, status="stopped"
        )

    def client_week(self, **fields):
        values = {
            "enrollment": self.enrollment_a,
            "program": self.program,
            "organization": self.org,
            "user": self.client_a,
            "program_week_id": "week-1",
            "week_number": 5,
            "name": "Client name",
            "manual_notes": "Client notes",
        }
        values.update(fields)
        return ClientProgramWeek.objects.create(**values)

    def test_creates_missing_client_weeks(self):
        result = sync_template_to_clients(self.program, [self.enrollment_a.pk])

        self.assertIs(result.success, True)
        self.assertEqual(result.clients_updated, 1)
        self.assertEqual(result.weeks_created, 2)
        week = ClientProgramWeek.objects.get(enrollment=self.enrollment_a, program_week_id="week-1")
        self.assertEqual(week.name, "Week 1")
        self.assertEqual(week.weekly_tasks, [{"id": "t1", "label": "Read"}])
        self.assertIsNone(week.manual_notes)
        self.assertEqual(week.linked_summary_ids, [])

    def test_preserve_manual_notes_with_notes_sync_enabled(self):
        week = self.client_week()
        options = TemplateSyncOptions(sync_notes=True, preserve_manual_notes=True)

        sync_template_to_clients(self.program, [self.enrollment_a.pk], options)

        week.refresh_from_db()
        self.assertEqual(week.manual_notes, "Client notes")
        self.assertEqual(week.notes, ["Intro"])

    def test_manual_notes_overwritten_without_preserve(self):
        week = self.client_week()
        sync_template_to_clients(self.program, [self.enrollment_a.pk], TemplateSyncOptions())
        week.refresh_from_db()
        self.assertEqual(week.manual_notes, "Template notes")

    def test_positional_fields_always_refresh(self):
        week = self.client_week(has_local_changes=True)
        options = TemplateSyncOptions(
            sync_tasks=False, sync_focus=False, sync_notes=False, sync_habits=False,
            sync_prompt=False, sync_name=False, sync_theme=False,
        )

        result = sync_template_to_clients(self.program, [self.enrollment_a.pk], options, week_numbers=[1])

        self.assertEqual((result.weeks_updated, result.weeks_created), (1, 0))
        week.refresh_from_db()
        self.assertEqual(week.week_number, 1)
        self.assertEqual(week.module_id, "m1")
        self.assertEqual((week.start_day_index, week.end_day_index), (1, 7))
        self.assertEqual(week.name, "Client name")
        self.assertFalse(week.has_local_changes)
        self.assertIsNotNone(week.last_synced_at)

    def test_preserve_client_links(self):
        program_weeks = [dict(self.program.weeks[0], linked_summary_ids=["template-summary"])]
        Program.objects.filter(pk=self.program.pk).update(weeks=program_weeks)
        self.program.refresh_from_db()
        week = self.client_week(linked_summary_ids=["client-summary"])

        sync_template_to_clients(self.program, [self.enrollment_a.pk], TemplateSyncOptions(preserve_client_links=True))

        week.refresh_from_db()
        self.assertEqual(week.linked_summary_ids, ["client-summary"])

    def test_partial_failure(self):
        result = sync_template_to_clients(self.program, [self.enrollment_a.pk, 99999])

        self.assertEqual(result.success, "partial")
        self.assertEqual(result.clients_updated, 1)
        self.assertEqual(result.errors[0]["enrollment_id"], 99999)

    def test_all_failed(self):
        other = Program.objects.create(organization=self.org, name="Other", program_type="individual")
        stranger = ProgramEnrollment.objects.create(user=self.client_b, program=other, organization=self.org)

        result = sync_template_to_clients(self.program, [stranger.pk])

        self.assertIs(result.success, False)
        self.assertEqual(result.as_dict()["errors"][0]["enrollment_id"], stranger.pk)

    def test_all_targets_active_and_upcoming(self):
        result = sync_template_to_clients(self.program, "all")
        self.assertEqual(result.clients_updated, 1)
        self.assertFalse(ClientProgramWeek.objects.filter(enrollment=self.enrollment_b).exists())

    def test_group_program_rejected(self):
        group = Program.objects.create(organization=self.org, name="Group", program_type="group")
        with self.assertRaises(TemplateSyncNotAllowed):
            sync_template_to_clients(group, "all")

    def test_options_accept_camel_case(self):
        options = TemplateSyncOptions.from_dict({"syncNotes": False, "preserve_recordings": True})
        self.assertFalse(options.sync_notes)
        self.assertTrue(options.preserve_recordings)
        self.assertTrue(options.sync_tasks)

    def set_template_week(self, **fields):
        weeks = [dict(self.program.weeks[0], **fields)] + self.program.weeks[1:]
        Program.objects.filter(pk=self.program.pk).update(weeks=weeks)
        self.program.refresh_from_db()

    def test_preserve_recordings_keeps_client_recording(self):
        self.set_template_week(
            coach_recording_url="https://example.com/template.mp4", coach_recording_notes="Template recording"
        )
        week = self.client_week(coach_recording_url="https://example.com/client.mp4")

        sync_template_to_clients(self.program, [self.enrollment_a.pk], TemplateSyncOptions(preserve_recordings=True))

        week.refresh_from_db()
        self.assertEqual(week.coach_recording_url, "https://example.com/client.mp4")
        self.assertIsNone(week.coach_recording_notes)
        self.assertEqual(week.manual_notes, "Template notes")

    def test_recordings_overwritten_without_preserve(self):
        self.set_template_week(
            coach_recording_url="https://example.com/template.mp4", coach_recording_notes="Template recording"
        )
        week = self.client_week(coach_recording_url="https://example.com/client.mp4", coach_recording_notes="Mine")

        sync_template_to_clients(self.program, [self.enrollment_a.pk], TemplateSyncOptions())

        week.refresh_from_db()
        self.assertEqual(week.coach_recording_url, "https://example.com/template.mp4")
        self.assertEqual(week.coach_recording_notes, "Template recording")

    def test_links_overwritten_without_preserve(self):
        self.set_template_week(linked_summary_ids=["template-summary"], linked_call_event_ids=["template-call"])
        week = self.client_week(linked_summary_ids=["client-summary"], linked_call_event_ids=["client-call"])

        sync_template_to_clients(self.program, [self.enrollment_a.pk], TemplateSyncOptions())

        week.refresh_from_db()
        self.assertEqual(week.linked_summary_ids, ["template-summary"])
        self.assertEqual(week.linked_call_event_ids, ["template-call"])

    def test_empty_habit_list_is_synced_as_list(self):
        """Test a template week without habits gives client weeks an empty list, not null."""
        self.set_template_week(weekly_habits=[])
        week = self.client_week(weekly_habits=[{"title": "Old habit"}])

        sync_template_to_clients(self.program, [self.enrollment_a.pk])

        week.refresh_from_db()
        self.assertEqual(week.weekly_habits, [])
        created = ClientProgramWeek.objects.get(enrollment=self.enrollment_a, program_week_id="week-2")
        self.assertEqual(created.weekly_habits, [])


class CohortTemplateSyncTests(ProgramFixturesMixin, TestCase):
    """Tests for pulling group program template changes into a cohort instance."""

    def set_template_weeks(self, weeks):
        Program.objects.filter(pk=self.program.pk).update(weeks=weeks)
        self.program.refresh_from_db()

    def test_updates_content_and_keeps_days(self):
        self.distribute([{"id": "a", "label": "A"}])
        self.set_template_weeks([
            make_week(1, name="Week 1 v2", module_id="m9", start_day_index=20, end_day_index=26,
                      weekly_tasks=[{"id": "a", "label": "A"}, {"id": "b", "label": "B"}]),
            make_week(2),
        ])

        result = sync_template_to_cohort(self.program, self.cohort)

        self.assertEqual((result.weeks_updated, result.weeks_created), (2, 0))
        self.assertIsNone(result.member_sync)
        week = ProgramInstance.objects.get(cohort=self.cohort).weeks[0]
        self.assertEqual(week["name"], "Week 1 v2")
        self.assertEqual(week["module_id"], "m9")
        self.assertEqual((week["start_day_index"], week["end_day_index"]), (1, 7))
        self.assertEqual([t["id"] for t in week["weekly_tasks"]], ["a", "b"])
        self.assertEqual([t["id"] for t in week["days"][0]["tasks"]], ["a"])
        self.assertFalse(week["has_local_changes"])

    def test_preserve_manual_notes(self):
        update_week_content(self.program, self.cohort, "1", {"manual_notes": "Cohort recap"})
        self.set_template_weeks([make_week(1, manual_notes="Template notes", theme="New theme"), make_week(2)])

        sync_template_to_cohort(self.program, self.cohort, TemplateSyncOptions(preserve_manual_notes=True))

        week = ProgramInstance.objects.get(cohort=self.cohort).weeks[0]
        self.assertEqual(week["manual_notes"], "Cohort recap")
        self.assertEqual(week["theme"], "New theme")

    def test_week_numbers_limit_the_sync(self):
        resolve_cohort_instance(self.program, self.cohort)
        self.set_template_weeks([make_week(1, name="Changed"), make_week(2, name="Changed")])

        result = sync_template_to_cohort(self.program, self.cohort, week_numbers=[2])

        self.assertEqual(result.weeks_updated, 1)
        weeks = ProgramInstance.objects.get(cohort=self.cohort).weeks
        self.assertEqual([w["name"] for w in weeks], ["Week 1", "Changed"])

    def test_adds_missing_weeks_with_post_program_week_last(self):
        resolve_cohort_instance(self.program, self.cohort)
        self.set_template_weeks([make_week(1), make_week(2), make_week(-1, name="Alumni"), make_week(3)])

        result = sync_template_to_cohort(self.program, self.cohort)

        self.assertEqual((result.weeks_updated, result.weeks_created), (2, 2))
        weeks = ProgramInstance.objects.get(cohort=self.cohort).weeks
        self.assertEqual([w["week_number"] for w in weeks], [1, 2, 3, -1])

    def test_distribute_after_sync_pushes_to_members(self):
        resolve_cohort_instance(self.program, self.cohort)
        self.set_template_weeks([
            make_week(1, weekly_tasks=[{"id": "h", "label": "Hydrate", "day_tag": "daily"}]),
            make_week(2),
        ])

        result = sync_template_to_cohort(self.program, self.cohort, week_numbers=[1], distribute_after_sync=True)

        self.assertTrue(result.distributed)
        self.assertEqual(result.member_sync.created, 14)
        self.assertEqual(self.member_tasks(self.member_a).count(), 7)
        self.assertTrue(result.as_dict()["success"])

    def test_individual_program_rejected(self):
        program = Program.objects.create(organization=self.org, name="1:1", program_type="individual")
        with self.assertRaises(TemplateSyncNotAllowed) as ctx:
            sync_template_to_cohort(program, self.cohort)
        self.assertEqual(ctx.exception.message, "Template sync to cohort is only available for group programs")


class HabitSyncTests(ProgramFixturesMixin, TestCase):
    """Tests for pushing a program's default habits into its weeks."""

    DEFAULT_HABITS = [{"title": "Water", "description": "2 litres"}, "Sleep 8h"]

    def setUp(self):
        Program.objects.filter(pk=self.program.pk).update(
            default_habits=self.DEFAULT_HABITS,
            weeks=[make_week(1), make_week(2, weekly_habits=[{"title": "Walk", "frequency": "weekly"}])],
        )
        self.program.refresh_from_db()

    def day_habit_titles(self, day_position):
        days = [day for week in ProgramInstance.objects.get(cohort=self.cohort).weeks for day in week["days"]]
        return [habit["title"] for habit in days[day_position]["habits"]]

    def test_normalize_habit_templates(self):
        habits = normalize_habit_templates(["Water", {"title": "water"}, {"description": "no title"}, {"title": "Run", "frequency": "hourly"}])
        self.assertEqual(habits, [
            {"title": "Water", "description": None, "frequency": "daily"},
            {"title": "Run", "description": None, "frequency": "daily"},
        ])

    def test_fills_every_day_of_the_cohort(self):
        result = sync_program_habits(self.program, cohort=self.cohort)

        self.assertEqual((result.instances_updated, result.days_updated), (1, 14))
        self.assertEqual(self.day_habit_titles(0), ["Water", "Sleep 8h"])
        self.assertEqual(self.day_habit_titles(7), ["Water", "Sleep 8h", "Walk"])
        self.assertEqual(sync_program_habits(self.program, cohort=self.cohort).days_updated, 0)

    def test_existing_day_habits_kept_unless_overwrite(self):
        instance = resolve_cohort_instance(self.program, self.cohort)
        update_instance_day(instance, 1, {"habits": [{"title": "Custom"}]})

        self.assertEqual(sync_program_habits(self.program, cohort=self.cohort).days_updated, 13)
        self.assertEqual(self.day_habit_titles(0), ["Custom"])

        result = sync_program_habits(self.program, cohort=self.cohort, overwrite=True)
        self.assertEqual(result.days_updated, 1)
        self.assertEqual(self.day_habit_titles(0), ["Water", "Sleep 8h"])

    def test_fills_empty_client_weeks(self):
        program = Program.objects.create(
            organization=self.org, name="1:1", program_type="individual", default_habits=["Stretch"]
        )
        enrollment = ProgramEnrollment.objects.create(
            user=self.member_a, program=program, organization=self.org, status="active"
        )
        empty = ClientProgramWeek.objects.create(
            enrollment=enrollment, program=program, organization=self.org, user=self.member_a,
            program_week_id="w1", week_number=1,
        )
        own = ClientProgramWeek.objects.create(
            enrollment=enrollment, program=program, organization=self.org, user=self.member_a,
            program_week_id="w2", week_number=2, weekly_habits=[{"title": "Journal"}],
        )

        result = sync_program_habits(program)

        self.assertEqual(result.client_weeks_updated, 1)
        empty.refresh_from_db()
        own.refresh_from_db()
        self.assertEqual([h["title"] for h in empty.weekly_habits], ["Stretch"])
        self.assertEqual(own.weekly_habits, [{"title": "Journal"}])
