"""
Playback admin configuration.
"""

from django.contrib import admin

from playback.models import PlaybackSession


@admin.register(PlaybackSession)
class PlaybackSessionAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "entitlement",
        "started_at",
        "ended_at",
        "total_watch_ms",
        "total_buffer_ms",
        "buffer_events",
        "fatal_errors",
    ]
    search_fields = ["id", "entitlement__token_id", "entitlement__purchase__id"]
    readonly_fields = ["id", "entitlement", "created_at", "updated_at"]
    date_hierarchy = "started_at"
    ordering = ["-started_at"]
