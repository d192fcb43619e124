from django.urls import path, include
from rest_framework.routers import DefaultRouter
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView

from .views_programs import (
    CohortResyncAPIView,
    CohortSyncTemplateAPIView,
    CohortWeekContentAPIView,
    EnrollmentInstanceAPIView,
    InstanceDayAPIView,
    ProgramSyncHabitsAPIView,
    ProgramSyncTemplateAPIView,
)
from .views_tasks import TaskViewSet

router = DefaultRouter()
router.register(r'tasks', TaskViewSet, basename='task')

urlpatterns = [
    path('', include(router.urls)),
    # Cohort programs
    path('programs/<int:program_id>/cohorts/<int:cohort_id>/week-content/<str:week_id>/',
         CohortWeekContentAPIView.as_view(), name='api-cohort-week-content'),
    path('programs/<int:program_id>/cohorts/<int:cohort_id>/resync-tasks/',
         CohortResyncAPIView.as_view(), name='api-cohort-resync'),
    path('programs/<int:program_id>/cohorts/<int:cohort_id>/sync-template/',
         CohortSyncTemplateAPIView.as_view(), name='api-cohort-sync-template'),
    path('programs/<int:program_id>/sync-habits/',
         ProgramSyncHabitsAPIView.as_view(), name='api-program-sync-habits'),
    # Individual programs
    path('programs/<int:program_id>/sync-template/',
         ProgramSyncTemplateAPIView.as_view(), name='api-program-sync-template'),
    path('programs/<int:program_id>/enrollments/<int:enrollment_id>/instance/',
         EnrollmentInstanceAPIView.as_view(), name='api-enrollment-instance'),
    # Instances
    path('instances/<int:instance_id>/days/<int:day_index>/',
         InstanceDayAPIView.as_view(), name='api-instance-day'),
    path('schema/', SpectacularAPIView.as_view(), name='api-schema'),
    path('docs/', SpectacularSwaggerView.as_view(url_name='api-schema'), name='api-docs'),
    path('redoc/', SpectacularRedocView.as_view(url_name='api-schema'), name='api-redoc'),
]
