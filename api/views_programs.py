import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from programs.exceptions import ProgramError
from programs.services.instances import (
    get_cohort,
    get_enrollment,
    get_instance,
    get_program,
    resolve_cohort_instance,
    resolve_enrollment_instance,
)
from programs.services.habits import sync_program_habits
from programs.services.template_sync import TemplateSyncOptions, sync_template_to_clients, sync_template_to_cohort
from programs.services.week_content import get_week_content, update_instance_day, update_week_content
from programs.tasks import resync_cohort_member_tasks
from .permissions import IsOrganizationCoach
from .serializers_programs import (
    CohortSyncTemplateRequestSerializer,
    DayUpdateSerializer,
    SyncHabitsRequestSerializer,
    SyncTemplateRequestSerializer,
    WeekContentUpdateSerializer,
)

logger = logging.getLogger(__name__)


def _error(message, status_code):
    return Response({'error': message}, status=status_code)


class CohortWeekContentAPIView(APIView):
    """
    Read or edit one week of a cohort's program instance.

    The instance is created from the program template on first access.
    ``week_id`` is a week number or the week's id. PUT behaves like PATCH.

    Usage Example:
    PATCH /api/programs/3/cohorts/7/week-content/2/
    {"weekly_tasks": [{"label": "Journal"}], "distribution": "spread", "distribute_tasks_now": true}
    """
    permission_classes = [IsOrganizationCoach]
    serializer_class = WeekContentUpdateSerializer

    def get(self, request, program_id, cohort_id, week_id):
        try:
            program = get_program(program_id, request.organization)
            cohort = get_cohort(program, cohort_id)
            instance, week = get_week_content(program, cohort, week_id)
        except ProgramError as e:
            return _error(e.message, e.status_code)
        except Exception:
            logger.exception(f"Failed to load week {week_id} for cohort {cohort_id}")
            return _error('Failed to fetch week content', status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response({'success': True, 'instance_id': instance.pk, 'content': week})

    def patch(self, request, program_id, cohort_id, week_id):
        serializer = WeekContentUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            program = get_program(program_id, request.organization)
            cohort = get_cohort(program, cohort_id)
            result = update_week_content(program, cohort, week_id, serializer.validated_data)
        except ProgramError as e:
            return _error(e.message, e.status_code)
        except Exception:
            logger.exception(f"Failed to update week {week_id} for cohort {cohort_id}")
            return _error('Failed to update week content', status.HTTP_500_INTERNAL_SERVER_ERROR)

        data = {'success': True, 'content': result.week, 'distributed': result.distributed}
        if result.member_sync is not None:
            data['member_sync'] = result.member_sync.as_dict()
        if result.member_sync_error:
            data['member_sync_error'] = result.member_sync_error
        return Response(data)

    def put(self, request, program_id, cohort_id, week_id):
        return self.patch(request, program_id, cohort_id, week_id)


class CohortResyncAPIView(APIView):
    """
    Queue a full member task resync for a cohort's instance.

    Usage Example:
    POST /api/programs/3/cohorts/7/resync-tasks/
    """
    permission_classes = [IsOrganizationCoach]

    def post(self, request, program_id, cohort_id):
        try:
            program = get_program(program_id, request.organization)
            cohort = get_cohort(program, cohort_id)
            instance = resolve_cohort_instance(program, cohort)
            resync_cohort_member_tasks.delay(instance.pk)
        except ProgramError as e:
            return _error(e.message, e.status_code)
        except Exception:
            logger.exception(f"Failed to queue resync for cohort {cohort_id}")
            return _error('Failed to queue member resync', status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response({'success': True, 'instance_id': instance.pk}, status=status.HTTP_202_ACCEPTED)


class CohortSyncTemplateAPIView(APIView):
    """
    Pull a group program's template changes into a cohort's instance.

    Usage Example:
    POST /api/programs/3/cohorts/7/sync-template/
    {"week_numbers": [2], "sync_options": {"preserve_manual_notes": true}, "distribute_after_sync": true}
    """
    permission_classes = [IsOrganizationCoach]
    serializer_class = CohortSyncTemplateRequestSerializer

    def post(self, request, program_id, cohort_id):
        serializer = CohortSyncTemplateRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payload = serializer.validated_data

        try:
            program = get_program(program_id, request.organization)
            cohort = get_cohort(program, cohort_id)
            result = sync_template_to_cohort(
                program,
                cohort,
                TemplateSyncOptions.from_dict(payload.get('sync_options')),
                week_numbers=payload.get('week_numbers'),
                distribute_after_sync=payload['distribute_after_sync'],
            )
        except ProgramError as e:
            return _error(e.message, e.status_code)
        except Exception:
            logger.exception(f"Failed to sync template into cohort {cohort_id}")
            return _error('Failed to sync template', status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response({'success': True, 'sync_result': result.as_dict()})


class ProgramSyncHabitsAPIView(APIView):
    """
    Push a program's default habits into its instances and client weeks.

    Usage Example:
    POST /api/programs/3/sync-habits/
    {"cohort_id": 7, "overwrite": false}
    """
    permission_classes = [IsOrganizationCoach]
    serializer_class = SyncHabitsRequestSerializer

    def post(self, request, program_id):
        serializer = SyncHabitsRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payload = serializer.validated_data

        try:
            program = get_program(program_id, request.organization)
            cohort = None
            if payload.get('cohort_id') is not None:
                cohort = get_cohort(program, payload['cohort_id'])
            result = sync_program_habits(program, cohort=cohort, overwrite=payload['overwrite'])
        except ProgramError as e:
            return _error(e.message, e.status_code)
        except Exception:
            logger.exception(f"Failed to sync habits for program {program_id}")
            return _error('Failed to sync habits', status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response({'success': True, 'sync_result': result.as_dict()})


class ProgramSyncTemplateAPIView(APIView):
    """
    Push an individual program's template weeks into client week copies.

    Usage Example:
    POST /api/programs/3/sync-template/
    {"enrollment_ids": "all", "sync_options": {"preserve_manual_notes": true}, "week_numbers": [1, 2]}
    """
    permission_classes = [IsOrganizationCoach]
    serializer_class = SyncTemplateRequestSerializer

    def post(self, request, program_id):
        serializer = SyncTemplateRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payload = serializer.validated_data

        try:
            program = get_program(program_id, request.organization)
            result = sync_template_to_clients(
                program,
                payload['enrollment_ids'],
                TemplateSyncOptions.from_dict(payload.get('sync_options')),
                week_numbers=payload.get('week_numbers'),
            )
        except ProgramError as e:
            return _error(e.message, e.status_code)
        except Exception:
            logger.exception(f"Failed to sync template for program {program_id}")
            return _error('Failed to sync template', status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response({'success': True, 'sync_result': result.as_dict()})


class InstanceDayAPIView(APIView):
    """
    Replace one day's tasks and/or habits in an instance and push the day to members.

    Usage Example:
    PATCH /api/instances/12/days/3/
    {"tasks": [{"label": "Stretch", "is_primary": true}]}
    """
    permission_classes = [IsOrganizationCoach]
    serializer_class = DayUpdateSerializer

    def patch(self, request, instance_id, day_index):
        serializer = DayUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            instance = get_instance(instance_id, request.organization)
            day, counts = update_instance_day(instance, day_index, serializer.validated_data)
        except ProgramError as e:
            return _error(e.message, e.status_code)
        except Exception:
            logger.exception(f"Failed to update day {day_index} of instance {instance_id}")
            return _error('Failed to update day', status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response({'success': True, 'day': day, 'member_sync': counts.as_dict()})


class EnrollmentInstanceAPIView(APIView):
    """Instance for an individual client's enrollment, created on first access."""
    permission_classes = [IsOrganizationCoach]

    def get(self, request, program_id, enrollment_id):
        try:
            program = get_program(program_id, request.organization)
            enrollment = get_enrollment(program, enrollment_id)
            instance = resolve_enrollment_instance(program, enrollment)
        except ProgramError as e:
            return _error(e.message, e.status_code)
        except Exception:
            logger.exception(f"Failed to load instance for enrollment {enrollment_id}")
            return _error('Failed to fetch instance', status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response({
            'success': True,
            'instance': {
                'id': instance.pk,
                'instance_type': instance.instance_type,
                'start_date': instance.start_date,
                'include_weekends': instance.include_weekends,
                'weeks': instance.weeks,
            },
        })
