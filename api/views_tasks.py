from rest_framework import mixins, viewsets
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated

from core.services import ProgramCalendarService
from tracker.models import Task
from .serializers_programs import TaskSerializer


class TaskViewSet(mixins.ListModelMixin,
                  mixins.RetrieveModelMixin,
                  mixins.UpdateModelMixin,
                  viewsets.GenericViewSet):
    """
    API endpoint for the authenticated user's own tasks.

    Optional ``?date=YYYY-MM-DD`` narrows the list to one day. PATCH with
    ``completed`` toggles completion; program tasks keep their completion
    across coach edits.
    """
    serializer_class = TaskSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ['get', 'patch', 'head', 'options']

    def get_queryset(self):
        queryset = Task.objects.filter(user=self.request.user)
        try:
            task_date = ProgramCalendarService.parse_date(self.request.query_params.get('date'))
        except ValueError:
            raise ValidationError({'date': 'Use YYYY-MM-DD'})
        if task_date:
            queryset = queryset.filter(date=task_date)
        return queryset
