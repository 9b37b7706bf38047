"""
Editorial API serializers.

Input serializers validate request bodies before anything reaches the
services; output serializers shape articles, reviews, comments and versions.
"""

from django.conf import settings
from rest_framework import serializers

from apps.core.exceptions import (
    ErrorCode,
    InvalidArticleIdError,
    ValidationError,
)

from .models import Article, ArticleReview, ArticleVersion, EditorialComment
from .state_machine import ReviewDecision


def parse_positive_int(value, error_class=ValidationError, name='id', code=None):
    """
    Parse a path or body value as a positive integer.

    Accepts ints and ASCII digit strings; rejects booleans, floats with a
    fraction, zero, negatives, and strings too long to convert.
    """
    if isinstance(value, bool):
        value = None
    parsed = None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.isascii() and text.isdigit():
            try:
                parsed = int(text)
            except ValueError:
                # Beyond the interpreter's int string conversion limit
                parsed = None

    if parsed is None or parsed < 1:
        kwargs = {'field': name}
        if code is not None:
            kwargs['code'] = code
        raise error_class(f"Invalid {name}: must be a positive integer", **kwargs)
    return parsed


def parse_article_id(value) -> int:
    return parse_positive_int(value, InvalidArticleIdError, name='articleId')


def parse_comment_id(value) -> int:
    return parse_positive_int(
        value, ValidationError, name='commentId', code=ErrorCode.INVALID_COMMENT_ID,
    )


def parse_version_number(value, name='version') -> int:
    return parse_positive_int(
        value, ValidationError, name=name, code=ErrorCode.INVALID_PARAMETERS,
    )


def validated_data_or_raise(serializer):
    """Run ``is_valid`` and convert errors into a VALIDATION_ERROR response."""
    if not serializer.is_valid():
        field = next(iter(serializer.errors), None)
        raise ValidationError(
            "Invalid request data",
            field=field,
            details=serializer.errors,
        )
    return serializer.validated_data


# ============================================================================
# Workflow input
# ============================================================================

class ReviewArticleSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=[d.value for d in ReviewDecision])
    comments = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        max_length=5000,
    )

    def validate_decision(self, value):
        return ReviewDecision.from_string(value)


class PendingReviewsQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=1)

    def validate_limit(self, value):
        return min(value, getattr(settings, 'EDITORIAL_PENDING_MAX_LIMIT', 100))


# ============================================================================
# Workflow output
# ============================================================================

class PendingArticleSerializer(serializers.ModelSerializer):
    """Compact serializer for the review queue."""

    author_id = serializers.IntegerField(read_only=True)
    author_name = serializers.SerializerMethodField()

    class Meta:
        model = Article
        fields = [
            'id',
            'title',
            'slug',
            'excerpt',
            'status',
            'author_id',
            'author_name',
            'submitted_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_author_name(self, obj):
        return obj.author.get_full_name() or obj.author.username


class ArticleReviewSerializer(serializers.ModelSerializer):
    """One review ledger row with the reviewer's display name."""

    article_id = serializers.IntegerField(read_only=True)
    reviewer_id = serializers.IntegerField(read_only=True)
    reviewer_name = serializers.SerializerMethodField()
    reviewer_email = serializers.EmailField(source='reviewer.email', read_only=True)

    class Meta:
        model = ArticleReview
        fields = [
            'id',
            'article_id',
            'reviewer_id',
            'reviewer_name',
            'reviewer_email',
            'decision',
            'comments',
            'created_at',
        ]
        read_only_fields = fields

    def get_reviewer_name(self, obj):
        return obj.reviewer.get_full_name() or obj.reviewer.username


# ============================================================================
# Comments
# ============================================================================

class CommentTextField(serializers.CharField):
    """Comment body bounded by EDITORIAL_COMMENT_MAX_LENGTH."""

    def __init__(self, **kwargs):
        kwargs.setdefault('max_length', getattr(settings, 'EDITORIAL_COMMENT_MAX_LENGTH', 1000))
        kwargs.setdefault('min_length', 1)
        super().__init__(**kwargs)


class AddCommentSerializer(serializers.Serializer):
    text = CommentTextField()


class UpdateCommentSerializer(serializers.Serializer):
    text = CommentTextField()
    resolved = serializers.BooleanField(required=False)


class ResolveCommentSerializer(serializers.Serializer):
    resolved = serializers.BooleanField(default=False)


class EditorialCommentSerializer(serializers.ModelSerializer):
    article_id = serializers.IntegerField(read_only=True)
    author_id = serializers.IntegerField(read_only=True)
    author_name = serializers.SerializerMethodField()
    author_email = serializers.EmailField(source='author.email', read_only=True)

    class Meta:
        model = EditorialComment
        fields = [
            'id',
            'article_id',
            'author_id',
            'author_name',
            'author_email',
            'text',
            'resolved',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_author_name(self, obj):
        return obj.author.get_full_name() or obj.author.username


# ============================================================================
# Versions
# ============================================================================

class SaveVersionSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=500)
    excerpt = serializers.CharField(allow_blank=True)
    content = serializers.JSONField()
    summary = serializers.CharField(required=False, allow_blank=True, max_length=500)


class RestoreVersionSerializer(serializers.Serializer):
    version = serializers.IntegerField(min_value=1)


class CleanupVersionsQuerySerializer(serializers.Serializer):
    keep = serializers.IntegerField(required=False, min_value=1)


class ArticleVersionSerializer(serializers.ModelSerializer):
    article_id = serializers.IntegerField(read_only=True)
    changed_by_id = serializers.IntegerField(read_only=True)
    changed_by_name = serializers.SerializerMethodField()

    class Meta:
        model = ArticleVersion
        fields = [
            'id',
            'article_id',
            'version',
            'title',
            'excerpt',
            'content',
            'changed_by_id',
            'changed_by_name',
            'changes_summary',
            'created_at',
        ]
        read_only_fields = fields

    def get_changed_by_name(self, obj):
        if obj.changed_by is None:
            return None
        return obj.changed_by.get_full_name() or obj.changed_by.username
