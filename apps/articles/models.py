"""
Article models for the SafraReport editorial back office.
Articles, their append-only review ledger, editorial comments and versions.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from apps.core.models import TimestampedModel


class Article(TimestampedModel):
    """
    A news article moving through the editorial workflow.

    Rows are created by the authoring flow in ``draft``. Status and the
    workflow timestamps are written only by the workflow service.
    """

    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('pending_review', 'Pending Review'),
        ('approved', 'Approved'),
        ('needs_changes', 'Needs Changes'),
        ('rejected', 'Rejected'),
        ('published', 'Published'),
    ]

    title = models.CharField(
        max_length=500,
        verbose_name='Title',
        help_text='Article headline'
    )

    slug = models.SlugField(
        max_length=255,
        unique=True,
        verbose_name='Slug',
        help_text='URL slug'
    )

    excerpt = models.TextField(
        blank=True,
        verbose_name='Excerpt',
        help_text='Short summary shown in listings'
    )

    content = models.JSONField(
        default=dict,
        blank=True,
        verbose_name='Content',
        help_text='Rich-text editor document'
    )

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='articles',
        verbose_name='Author',
        help_text='Owning user, fixed at creation'
    )

    # Workflow
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='draft',
        db_index=True,
        verbose_name='Status',
        help_text='Current editorial workflow status'
    )

    submitted_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='Submitted At',
        help_text='When the article last entered the review queue'
    )

    approved_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='Approved At'
    )

    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='approved_articles',
        verbose_name='Approved By'
    )

    published_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name='Published At',
        help_text='Set once, when the article is published'
    )

    class Meta:
        db_table = 'articles'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'submitted_at'], name='articles_status_submitted_idx'),
            models.Index(fields=['author', 'status'], name='articles_author_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(status='published', published_at__isnull=False)
                    | (~Q(status='published') & Q(published_at__isnull=True))
                ),
                name='articles_published_at_matches_status',
            ),
        ]
        verbose_name = 'Article'
        verbose_name_plural = 'Articles'

    def __str__(self):
        return f"{self.title[:50]} ({self.status})"

    @property
    def is_published(self):
        return self.status == 'published'


class AppendOnlyError(Exception):
    """Raised when code tries to change or remove a review ledger row."""


class ArticleReviewQuerySet(models.QuerySet):
    """Queryset that refuses bulk mutation of ledger rows."""

    def update(self, **kwargs):
        raise AppendOnlyError("Review records are append-only and cannot be updated")

    def delete(self):
        raise AppendOnlyError("Review records are append-only and cannot be deleted")


class ArticleReview(models.Model):
    """
    One editorial decision on an article.

    The review ledger is append-only: rows are inserted by the workflow
    service and never updated or deleted.
    """

    DECISION_CHOICES = [
        ('approve', 'Approve'),
        ('reject', 'Reject'),
        ('needs_changes', 'Needs Changes'),
    ]

    article = models.ForeignKey(
        Article,
        on_delete=models.PROTECT,
        related_name='reviews',
        verbose_name='Article'
    )

    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='article_reviews',
        verbose_name='Reviewer'
    )

    decision = models.CharField(
        max_length=20,
        choices=DECISION_CHOICES,
        verbose_name='Decision'
    )

    comments = models.TextField(
        blank=True,
        verbose_name='Comments',
        help_text='Optional reviewer notes'
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        editable=False,
        verbose_name='Created At'
    )

    objects = ArticleReviewQuerySet.as_manager()

    class Meta:
        db_table = 'article_reviews'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['article', 'created_at'], name='reviews_article_created_idx'),
        ]
        verbose_name = 'Article Review'
        verbose_name_plural = 'Article Reviews'

    def __str__(self):
        return f"{self.decision} on Article {self.article_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AppendOnlyError("Review records are append-only and cannot be updated")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AppendOnlyError("Review records are append-only and cannot be deleted")


class EditorialComment(TimestampedModel):
    """
    Collaborative feedback left on an article by the editorial team.
    """

    article = models.ForeignKey(
        Article,
        on_delete=models.CASCADE,
        related_name='editorial_comments',
        verbose_name='Article'
    )

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='editorial_comments',
        verbose_name='Author'
    )

    text = models.TextField(
        verbose_name='Text'
    )

    resolved = models.BooleanField(
        default=False,
        db_index=True,
        verbose_name='Resolved'
    )

    class Meta:
        db_table = 'editorial_comments'
        ordering = ['-created_at', '-id']
        verbose_name = 'Editorial Comment'
        verbose_name_plural = 'Editorial Comments'

    def __str__(self):
        return f"Comment {self.pk} on Article {self.article_id}"


class ArticleVersion(models.Model):
    """
    Numbered snapshot of an article's editable content.
    """

    article = models.ForeignKey(
        Article,
        on_delete=models.CASCADE,
        related_name='versions',
        verbose_name='Article'
    )

    version = models.PositiveIntegerField(
        verbose_name='Version',
        help_text='1-based, increments per article'
    )

    title = models.CharField(max_length=500, verbose_name='Title')

    excerpt = models.TextField(blank=True, verbose_name='Excerpt')

    content = models.JSONField(default=dict, blank=True, verbose_name='Content')

    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='article_versions',
        verbose_name='Changed By'
    )

    changes_summary = models.CharField(
        max_length=500,
        blank=True,
        verbose_name='Changes Summary'
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        editable=False,
        verbose_name='Created At'
    )

    class Meta:
        db_table = 'article_versions'
        ordering = ['-version']
        constraints = [
            models.UniqueConstraint(
                fields=['article', 'version'],
                name='article_versions_unique_number',
            ),
        ]
        verbose_name = 'Article Version'
        verbose_name_plural = 'Article Versions'

    def __str__(self):
        return f"Version {self.version} of Article {self.article_id}"
