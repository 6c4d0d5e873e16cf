from django.urls import path

from . import api

urlpatterns = [
    path('api/timelines/available/', api.available_timelines, name='api-timelines-available'),
    path('api/agent/timeline/interact/', api.interact, name='api-timeline-interact'),
    path('api/agent/timeline/home/', api.go_home, name='api-timeline-home'),
    path('api/agent/timeline/back/', api.go_back, name='api-timeline-back'),
    path('api/agent/timeline/<str:timeline_id>/', api.agent_progress, name='api-timeline-progress'),
    path('api/founder/timelines/', api.founder_timelines, name='api-founder-timelines'),
    path('api/founder/timelines/<str:timeline_id>/', api.founder_timeline_detail, name='api-founder-timeline'),
]
