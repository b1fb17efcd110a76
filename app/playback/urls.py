"""
URL configuration for the playback app.

All routes are prefixed with /api/v1/playback/ when included in the main URLconf.
"""

from django.urls import path

from playback.views import EndSessionView, StartSessionView, SubmitTelemetryView

app_name = "playback"

urlpatterns = [
    path("watch/<str:token>/sessions/", StartSessionView.as_view(), name="start_session"),
    path(
        "watch/<str:token>/sessions/<uuid:session_id>/end/",
        EndSessionView.as_view(),
        name="end_session",
    ),
    path(
        "watch/<str:token>/sessions/<uuid:session_id>/telemetry/",
        SubmitTelemetryView.as_view(),
        name="submit_telemetry",
    ),
]
