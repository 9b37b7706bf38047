"""
Admin interface for editor profiles.
"""

from django.contrib import admin

from .models import EditorProfile


@admin.register(EditorProfile)
class EditorProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'role', 'created_at']
    list_filter = ['role']
    search_fields = ['user__username', 'user__email']
    raw_id_fields = ['user']
