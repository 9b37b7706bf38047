"""
Admin interface for articles and the editorial workflow records.

Workflow columns are read-only here: status changes go through the review API.
"""

from django.contrib import admin
from django.utils.html import format_html

from .models import Article, ArticleReview, ArticleVersion, EditorialComment

STATUS_COLORS = {
    'draft': 'gray',
    'pending_review': 'orange',
    'approved': 'teal',
    'needs_changes': 'purple',
    'rejected': 'red',
    'published': 'green',
}


class ArticleReviewInline(admin.TabularInline):
    model = ArticleReview
    extra = 0
    can_delete = False
    fields = ['created_at', 'reviewer', 'decision', 'comments']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Article)
class ArticleAdmin(admin.ModelAdmin):
    """
    Admin interface for Article model.
    """

    list_display = [
        'title_short',
        'author',
        'status_badge',
        'submitted_at',
        'published_at',
        'created_at',
    ]

    list_filter = [
        'status',
        ('published_at', admin.DateFieldListFilter),
    ]

    search_fields = ['title', 'slug', 'excerpt']

    prepopulated_fields = {'slug': ('title',)}

    readonly_fields = [
        'id',
        'status',
        'submitted_at',
        'approved_at',
        'approved_by',
        'published_at',
        'created_at',
        'updated_at',
    ]

    raw_id_fields = ['author']

    fieldsets = (
        ('Basic Information', {
            'fields': ('title', 'slug', 'excerpt', 'author')
        }),
        ('Content', {
            'fields': ('content',),
            'classes': ('collapse',),
        }),
        ('Workflow', {
            'fields': (
                'status',
                'submitted_at',
                'approved_at',
                'approved_by',
                'published_at',
            )
        }),
        ('System Fields', {
            'fields': ('id', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    inlines = [ArticleReviewInline]

    def get_readonly_fields(self, request, obj=None):
        # Ownership is fixed once the article exists
        if obj is not None:
            return self.readonly_fields + ['author']
        return self.readonly_fields

    def title_short(self, obj):
        """Display shortened title."""
        max_length = 60
        if len(obj.title) > max_length:
            return obj.title[:max_length] + '...'
        return obj.title
    title_short.short_description = 'Title'
    title_short.admin_order_field = 'title'

    def status_badge(self, obj):
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 6px; '
            'border-radius: 3px; font-size: 11px; font-weight: bold;">{}</span>',
            STATUS_COLORS.get(obj.status, 'gray'),
            obj.get_status_display(),
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'


@admin.register(ArticleReview)
class ArticleReviewAdmin(admin.ModelAdmin):
    """Read-only view of the review ledger."""

    list_display = ['article', 'reviewer', 'decision', 'created_at']
    list_filter = ['decision']
    search_fields = ['article__title', 'comments']
    raw_id_fields = ['article', 'reviewer']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(EditorialComment)
class EditorialCommentAdmin(admin.ModelAdmin):
    list_display = ['article', 'author', 'resolved', 'created_at']
    list_filter = ['resolved']
    search_fields = ['text', 'article__title']
    raw_id_fields = ['article', 'author']


@admin.register(ArticleVersion)
class ArticleVersionAdmin(admin.ModelAdmin):
    list_display = ['article', 'version', 'changed_by', 'changes_summary', 'created_at']
    search_fields = ['article__title', 'changes_summary']
    raw_id_fields = ['article', 'changed_by']
    readonly_fields = ['created_at']
