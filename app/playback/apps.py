"""
Playback app configuration.
"""

from django.apps import AppConfig


class PlaybackConfig(AppConfig):
    """Configuration for the playback application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "playback"
    verbose_name = "Playback"
