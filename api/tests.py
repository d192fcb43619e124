"""Endpoint tests for the coach program API and the member task API."""
from datetime import date
from unittest import mock

from django.test import TestCase
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from accounts.models import Organization, OrganizationMembership, User
from programs.models import ClientProgramWeek, Program, ProgramCohort, ProgramEnrollment, ProgramInstance
from tracker.models import Task


class ProgramAPITestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.org = Organization.objects.create(name="Acme Coaching", slug="acme")
        cls.other_org = Organization.objects.create(name="Rival", slug="rival")
        cls.coach = User.objects.create_user(email="coach@example.com", password="pw")
        cls.member = User.objects.create_user(email="member@example.com", password="pw")
        OrganizationMembership.objects.create(organization=cls.org, user=cls.coach, role="coach")
        OrganizationMembership.objects.create(organization=cls.org, user=cls.member, role="member")

        cls.program = Program.objects.create(
            organization=cls.org,
            name="Spring Reset",
            length_days=14,
            weeks=[
                {"id": "w1", "week_number": 1, "name": "Start"},
                {"id": "w2", "week_number": 2, "name": "Build"},
            ],
        )
        cls.cohort = ProgramCohort.objects.create(
            program=cls.program, organization=cls.org, name="March",
            start_date=date(2026, 3, 2), end_date=date(2026, 3, 15), status="active",
        )
        ProgramEnrollment.objects.create(
            user=cls.member, program=cls.program, organization=cls.org, cohort=cls.cohort, status="active"
        )

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.coach)

    def week_url(self, week="1", program=None, cohort=None):
        program_id = program.pk if program else self.program.pk
        cohort_id = cohort.pk if cohort else self.cohort.pk
        return f"/api/programs/{program_id}/cohorts/{cohort_id}/week-content/{week}/"


class AuthorizationTests(ProgramAPITestCase):

    def test_unauthenticated_gets_401(self):
        response = APIClient().get(self.week_url())
        self.assertEqual(response.status_code, 401)
        self.assertIn("error", response.json())

    def test_bearer_token(self):
        token = Token.objects.create(user=self.coach)
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.key}")
        self.assertEqual(client.get(self.week_url()).status_code, 200)

    def test_member_is_forbidden(self):
        self.client.force_authenticate(user=self.member)
        response = self.client.get(self.week_url())
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json(), {"error": "Coach access required"})

    def test_program_of_other_organization_is_not_found(self):
        foreign = Program.objects.create(organization=self.other_org, name="Theirs")
        cohort = ProgramCohort.objects.create(
            program=foreign, organization=self.other_org, name="X",
            start_date=date(2026, 3, 2), end_date=date(2026, 3, 8),
        )
        response = self.client.get(self.week_url(program=foreign, cohort=cohort))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Program not found"})

    def test_organization_header_picks_between_memberships(self):
        OrganizationMembership.objects.create(organization=self.other_org, user=self.coach, role="admin")

        self.assertEqual(self.client.get(self.week_url()).status_code, 403)
        response = self.client.get(self.week_url(), HTTP_X_ORGANIZATION_ID=str(self.org.pk))
        self.assertEqual(response.status_code, 200)


class CohortWeekContentAPITests(ProgramAPITestCase):

    def test_get_creates_instance(self):
        response = self.client.get(self.week_url("w2"))

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["content"]["week_number"], 2)
        self.assertEqual(len(body["content"]["days"]), 7)
        self.assertEqual(ProgramInstance.objects.filter(cohort=self.cohort).count(), 1)

    def test_patch_distributes_and_syncs_members(self):
        response = self.client.patch(self.week_url(), {
            "weekly_tasks": [{"label": "Journal"}, {"label": "Walk", "is_primary": True}],
            "distribution": "first_day",
            "distribute_tasks_now": True,
        }, format="json")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["member_sync"]["created"], 2)
        self.assertEqual(len(body["content"]["days"][0]["tasks"]), 2)
        self.assertEqual(Task.objects.filter(user=self.member, day_index=1).count(), 2)

    def test_numeric_day_tag_pins_task_to_day(self):
        response = self.client.patch(self.week_url(), {
            "weekly_tasks": [{"label": "Group call", "day_tag": 3}],
            "distribution": "first_day",
            "distribute_tasks_now": True,
        }, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["content"]["days"][2]["tasks"][0]["day_tag"], 3)
        self.assertEqual(Task.objects.get(user=self.member).day_index, 3)

    def test_put_behaves_as_patch(self):
        response = self.client.put(self.week_url(), {"manual_notes": "Recap"}, format="json")

        self.assertEqual(response.status_code, 200)
        content = response.json()["content"]
        self.assertEqual(content["manual_notes"], "Recap")
        self.assertEqual(content["name"], "Start")
        self.assertNotIn("member_sync", response.json())

    def test_missing_week(self):
        response = self.client.patch(self.week_url("7"), {"name": "Nope"}, format="json")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Week not found"})

    def test_task_without_label_is_rejected(self):
        response = self.client.patch(self.week_url(), {"weekly_tasks": [{"is_primary": True}]}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("weekly_tasks", response.json()["error"])

    @mock.patch("api.views_programs.update_week_content", side_effect=RuntimeError("boom"))
    def test_unexpected_error_is_500(self, _update):
        response = self.client.patch(self.week_url(), {"name": "X"}, format="json")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Failed to update week content"})

    @mock.patch("api.views_programs.resync_cohort_member_tasks")
    def test_resync_is_queued(self, task):
        response = self.client.post(f"/api/programs/{self.program.pk}/cohorts/{self.cohort.pk}/resync-tasks/")

        self.assertEqual(response.status_code, 202)
        instance = ProgramInstance.objects.get(cohort=self.cohort)
        task.delay.assert_called_once_with(instance.pk)


class InstanceDayAPITests(ProgramAPITestCase):

    def test_patch_day_syncs_members(self):
        self.client.get(self.week_url())
        instance = ProgramInstance.objects.get(cohort=self.cohort)

        response = self.client.patch(
            f"/api/instances/{instance.pk}/days/2/", {"tasks": [{"label": "Stretch"}]}, format="json"
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["member_sync"]["created"], 1)
        self.assertEqual(Task.objects.get(user=self.member).date, date(2026, 3, 3))

    def test_unknown_day(self):
        self.client.get(self.week_url())
        instance = ProgramInstance.objects.get(cohort=self.cohort)
        response = self.client.patch(f"/api/instances/{instance.pk}/days/99/", {"habits": []}, format="json")
        self.assertEqual(response.status_code, 404)

    def test_empty_body_is_rejected(self):
        self.client.get(self.week_url())
        instance = ProgramInstance.objects.get(cohort=self.cohort)
        response = self.client.patch(f"/api/instances/{instance.pk}/days/1/", {}, format="json")
        self.assertEqual(response.status_code, 400)


class SyncTemplateAPITests(ProgramAPITestCase):

    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.individual = Program.objects.create(
            organization=cls.org, name="1:1", program_type="individual",
            weeks=[{"id": "w1", "week_number": 1, "name": "Start", "manual_notes": "Template"}],
        )
        cls.enrollment = ProgramEnrollment.objects.create(
            user=cls.member, program=cls.individual, organization=cls.org, status="active"
        )

    def url(self, program):
        return f"/api/programs/{program.pk}/sync-template/"

    def test_sync_all(self):
        response = self.client.post(self.url(self.individual), {
            "enrollment_ids": "all",
            "sync_options": {"preserveManualNotes": True},
        }, format="json")

        self.assertEqual(response.status_code, 200)
        result = response.json()["sync_result"]
        self.assertEqual(result["success"], True)
        self.assertEqual(result["weeks_created"], 1)
        self.assertTrue(ClientProgramWeek.objects.filter(enrollment=self.enrollment).exists())

    def test_partial_result(self):
        response = self.client.post(self.url(self.individual), {
            "enrollment_ids": [self.enrollment.pk, 424242],
        }, format="json")

        result = response.json()["sync_result"]
        self.assertEqual(result["success"], "partial")
        self.assertEqual(result["errors"][0]["enrollment_id"], 424242)

    def test_group_program_is_rejected(self):
        response = self.client.post(self.url(self.program), {"enrollment_ids": "all"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Template sync is only available for individual programs"})

    def test_enrollment_ids_required(self):
        response = self.client.post(self.url(self.individual), {"sync_options": {}}, format="json")
        self.assertEqual(response.status_code, 400)

    def test_enrollment_instance(self):
        response = self.client.get(f"/api/programs/{self.individual.pk}/enrollments/{self.enrollment.pk}/instance/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["instance"]["instance_type"], "individual")


class CohortSyncTemplateAPITests(ProgramAPITestCase):

    def url(self, program=None):
        program = program or self.program
        return f"/api/programs/{program.pk}/cohorts/{self.cohort.pk}/sync-template/"

    def test_sync_and_distribute(self):
        self.client.get(self.week_url())
        Program.objects.filter(pk=self.program.pk).update(weeks=[
            {"id": "w1", "week_number": 1, "name": "Start again",
             "weekly_tasks": [{"id": "t", "label": "Read", "day_tag": "1"}]},
            {"id": "w2", "week_number": 2, "name": "Build"},
        ])

        response = self.client.post(self.url(), {"week_numbers": [1], "distribute_after_sync": True}, format="json")

        self.assertEqual(response.status_code, 200)
        result = response.json()["sync_result"]
        self.assertEqual(result["weeks_updated"], 1)
        self.assertEqual(result["member_sync"]["created"], 1)
        self.assertEqual(Task.objects.get(user=self.member).day_index, 1)
        instance = ProgramInstance.objects.get(cohort=self.cohort)
        self.assertEqual(instance.weeks[0]["name"], "Start again")

    def test_cohort_of_other_program_is_not_found(self):
        individual = Program.objects.create(organization=self.org, name="1:1", program_type="individual")
        response = self.client.post(
            f"/api/programs/{individual.pk}/cohorts/{self.cohort.pk}/sync-template/", {}, format="json"
        )
        self.assertEqual(response.status_code, 404)

    def test_cohort_sync_requires_group_program(self):
        Program.objects.filter(pk=self.program.pk).update(program_type="individual")
        response = self.client.post(self.url(), {}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Template sync to cohort is only available for group programs"})


class SyncHabitsAPITests(ProgramAPITestCase):

    def test_sync_cohort_habits(self):
        Program.objects.filter(pk=self.program.pk).update(default_habits=[{"title": "Water"}])

        response = self.client.post(
            f"/api/programs/{self.program.pk}/sync-habits/", {"cohort_id": self.cohort.pk}, format="json"
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["sync_result"]["days_updated"], 14)
        day = ProgramInstance.objects.get(cohort=self.cohort).weeks[0]["days"][0]
        self.assertEqual(day["habits"], [{"title": "Water", "description": None, "frequency": "daily"}])

    def test_unknown_cohort(self):
        response = self.client.post(f"/api/programs/{self.program.pk}/sync-habits/", {"cohort_id": 424242}, format="json")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Cohort not found"})


class TaskAPITests(ProgramAPITestCase):

    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.member)
        self.task = Task.objects.create(user=self.member, organization=self.org, label="Mine", date=date(2026, 3, 2))
        Task.objects.create(user=self.coach, organization=self.org, label="Not mine")

    def test_list_only_own_tasks(self):
        response = self.client.get("/api/tasks/")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        rows = body["results"] if isinstance(body, dict) else body
        self.assertEqual([row["label"] for row in rows], ["Mine"])

    def test_filter_by_date(self):
        response = self.client.get("/api/tasks/?date=2026-03-03")
        body = response.json()
        rows = body["results"] if isinstance(body, dict) else body
        self.assertEqual(rows, [])
        self.assertEqual(self.client.get("/api/tasks/?date=March").status_code, 400)

    def test_toggle_completion(self):
        response = self.client.patch(f"/api/tasks/{self.task.pk}/", {"completed": True}, format="json")

        self.assertEqual(response.status_code, 200)
        self.task.refresh_from_db()
        self.assertTrue(self.task.completed)
        self.assertIsNotNone(self.task.completed_at)

        self.client.patch(f"/api/tasks/{self.task.pk}/", {"completed": False}, format="json")
        self.task.refresh_from_db()
        self.assertIsNone(self.task.completed_at)

    def test_cannot_touch_other_users_task(self):
        other = Task.objects.get(label="Not mine")
        response = self.client.patch(f"/api/tasks/{other.pk}/", {"completed": True}, format="json")
        self.assertEqual(response.status_code, 404)
