"""
Editorial services: review workflow, editorial comments, and versions.

Every status change goes through EditorialWorkflowService. Each operation
reads the article under a row lock, checks the transition, writes the review
ledger where applicable, and commits the new status with a compare-and-set
inside one transaction.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Union

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.db.models import Count, Max, Min, Q
from django.utils import timezone

from apps.core.exceptions import (
    EditorialException,
    ErrorCode,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from apps.core.metrics import increment_transition_rejection, observe_transition_duration

from .models import Article, ArticleReview, ArticleVersion, EditorialComment
from .repositories import ArticleRepository, ReviewLedger
from .state_machine import ArticleStatus, EditorialStateMachine, ReviewDecision
from . import tasks

logger = logging.getLogger(__name__)

REVIEWER_ROLES = ('editor', 'admin', 'super_admin')

DECISION_MESSAGES = {
    ReviewDecision.APPROVE: 'approved',
    ReviewDecision.REJECT: 'rejected',
    ReviewDecision.NEEDS_CHANGES: 'sent back for changes',
}


@contextmanager
def storage_errors(operation: str):
    """Convert database failures into StorageError."""
    try:
        yield
    except DatabaseError as exc:
        raise StorageError(f"{operation} failed: {type(exc).__name__}") from exc


@contextmanager
def tracked_operation(operation: str):
    """
    Time a workflow operation and count the ones that get refused.

    Storage failures are not refusals and are left out of the rejection count.
    """
    with observe_transition_duration(operation):
        try:
            with storage_errors(operation):
                yield
        except StorageError:
            raise
        except EditorialException as exc:
            increment_transition_rejection(operation, exc.error_code.value)
            raise


class EditorialWorkflowService:
    """
    Editorial review workflow.

    Callers pass ids, not model instances, so every operation re-reads the
    article inside its own transaction.
    """

    def __init__(
        self,
        articles: Optional[ArticleRepository] = None,
        ledger: Optional[ReviewLedger] = None,
    ):
        self.articles = articles or ArticleRepository()
        self.ledger = ledger or ReviewLedger()

    def submit_for_review(self, article_id: int, author_id: int, override: bool = False) -> Article:
        """
        Send a draft (or an article needing changes) to the review queue.

        Args:
            article_id: Article to submit
            author_id: Submitting user
            override: Caller may submit articles owned by someone else

        Raises:
            NotFoundError, UnauthorizedError, InvalidTransitionError, StorageError
        """
        with tracked_operation('submit'):
            with transaction.atomic():
                article = self.articles.get_article(article_id, for_update=True)

                if article.author_id != author_id and not override:
                    raise UnauthorizedError(
                        f"User {author_id} may not submit article {article_id} "
                        f"owned by user {article.author_id}"
                    )

                machine = EditorialStateMachine(article, self.articles)
                machine.ensure_can_transition(ArticleStatus.PENDING_REVIEW, action='submit')

                now = timezone.now()
                machine.transition_to(
                    ArticleStatus.PENDING_REVIEW,
                    actor_id=author_id,
                    fields={'submitted_at': now},
                    now=now,
                )
                self._notify_reviewers(article, exclude_user_id=author_id)

        logger.info(f"Article {article_id} submitted for review by user {author_id}")
        return article

    def review_article(
        self,
        article_id: int,
        reviewer_id: int,
        decision: Union[ReviewDecision, str],
        comments: Optional[str] = None,
    ) -> ArticleReview:
        """
        Record a review decision on a pending article.

        The ledger row and the status change commit together or not at all.
        Approval also stamps approved_at and approved_by.
        """
        with tracked_operation('review'):
            decision = self._parse_decision(decision)
            target = decision.target_status

            with transaction.atomic():
                article = self.articles.get_article(article_id, for_update=True)
                machine = EditorialStateMachine(article, self.articles)
                machine.ensure_can_transition(target, action='review')

                now = timezone.now()
                review = self.ledger.append(
                    article.pk, reviewer_id, decision.value, comments, created_at=now,
                )

                fields: Dict[str, Any] = {}
                if decision is ReviewDecision.APPROVE:
                    fields = {'approved_at': now, 'approved_by_id': reviewer_id}

                machine.transition_to(target, actor_id=reviewer_id, fields=fields, now=now)

                tasks.queue_notification(
                    tasks.ARTICLE_REVIEWED,
                    article.pk,
                    article.author_id,
                    f"Your article \"{article.title}\" was {DECISION_MESSAGES[decision]}."
                    + (f" Comments: {comments}" if comments else ""),
                )

        logger.info(
            f"Article {article_id} reviewed by user {reviewer_id}: {decision.value}"
        )
        return review

    def publish_article(self, article_id: int, publisher_id: int) -> Article:
        """Publish an approved article. ``published_at`` is written exactly once."""
        with tracked_operation('publish'):
            with transaction.atomic():
                article = self.articles.get_article(article_id, for_update=True)
                machine = EditorialStateMachine(article, self.articles)
                machine.ensure_can_transition(ArticleStatus.PUBLISHED, action='publish')

                now = timezone.now()
                machine.transition_to(
                    ArticleStatus.PUBLISHED,
                    actor_id=publisher_id,
                    fields={'published_at': now},
                    now=now,
                )

                if article.author_id != publisher_id:
                    tasks.queue_notification(
                        tasks.ARTICLE_PUBLISHED,
                        article.pk,
                        article.author_id,
                        f"Your article \"{article.title}\" is now published.",
                    )

        logger.info(f"Article {article_id} published by user {publisher_id}")
        return article

    def get_pending_reviews(self, limit: Optional[int] = None) -> List[Article]:
        """Review queue, oldest submission first."""
        default_limit = getattr(settings, 'EDITORIAL_PENDING_DEFAULT_LIMIT', 20)
        max_limit = getattr(settings, 'EDITORIAL_PENDING_MAX_LIMIT', 100)

        if limit is None:
            limit = default_limit
        if limit < 1:
            raise ValidationError(
                "limit must be a positive integer",
                code=ErrorCode.INVALID_PARAMETERS,
                field='limit',
            )

        with storage_errors('get_pending_reviews'):
            return self.articles.list_pending(min(limit, max_limit))

    def get_article_reviews(self, article_id: int) -> List[ArticleReview]:
        """Full review history of an article, oldest first."""
        with storage_errors('get_article_reviews'):
            if not self.articles.exists(article_id):
                raise NotFoundError(
                    f"Article {article_id} not found",
                    code=ErrorCode.ARTICLE_NOT_FOUND,
                )
            return self.ledger.list_by_article(article_id)

    def get_workflow_stats(self) -> Dict[str, int]:
        """Article count per status; every status is present."""
        with storage_errors('get_workflow_stats'):
            counts = self.articles.count_by_status()
        return {status.value: counts.get(status.value, 0) for status in ArticleStatus}

    def _parse_decision(self, decision) -> ReviewDecision:
        if isinstance(decision, ReviewDecision):
            return decision
        try:
            return ReviewDecision.from_string(decision)
        except ValueError:
            raise ValidationError(
                f"Invalid decision '{decision}'",
                field='decision',
                details={'allowed': [d.value for d in ReviewDecision]},
            )

    def _notify_reviewers(self, article: Article, exclude_user_id: int):
        User = get_user_model()
        reviewer_ids = (
            User.objects
            .filter(is_active=True)
            .filter(Q(editor_profile__role__in=REVIEWER_ROLES) | Q(is_superuser=True))
            .exclude(pk=exclude_user_id)
            .values_list('pk', flat=True)
        )
        for reviewer_id in reviewer_ids:
            tasks.queue_notification(
                tasks.ARTICLE_SUBMITTED,
                article.pk,
                reviewer_id,
                f"Article \"{article.title}\" is waiting for review.",
            )


class EditorialCommentService:
    """Threaded feedback on articles from the editorial team."""

    def __init__(self, articles: Optional[ArticleRepository] = None):
        self.articles = articles or ArticleRepository()

    def list_comments(self, article_id: int) -> List[EditorialComment]:
        """Comments on an article, newest first."""
        with storage_errors('list_comments'):
            self._require_article(article_id)
            return list(
                EditorialComment.objects
                .filter(article_id=article_id)
                .select_related('author')
                .order_by('-created_at', '-id')
            )

    def add_comment(self, article_id: int, author_id: int, text: str) -> EditorialComment:
        text = self._clean_text(text)
        with storage_errors('add_comment'):
            self._require_article(article_id)
            comment = EditorialComment.objects.create(
                article_id=article_id,
                author_id=author_id,
                text=text,
            )
        logger.info(f"Comment {comment.pk} added to article {article_id} by user {author_id}")
        return comment

    def get_comment(self, comment_id: int) -> EditorialComment:
        try:
            return EditorialComment.objects.select_related('author').get(pk=comment_id)
        except EditorialComment.DoesNotExist:
            raise NotFoundError(
                f"Comment {comment_id} not found",
                code=ErrorCode.COMMENT_NOT_FOUND,
            )

    def update_comment(
        self,
        comment_id: int,
        user_id: int,
        text: str,
        resolved: Optional[bool] = None,
        is_super_admin: bool = False,
    ) -> EditorialComment:
        """Edit a comment. Only its author or a super admin may do this."""
        text = self._clean_text(text)
        with storage_errors('update_comment'):
            comment = self.get_comment(comment_id)
            self._require_owner(comment, user_id, is_super_admin, action='edit')

            comment.text = text
            update_fields = ['text', 'updated_at']
            if resolved is not None:
                comment.resolved = resolved
                update_fields.append('resolved')
            comment.save(update_fields=update_fields)
        return comment

    def delete_comment(self, comment_id: int, user_id: int, is_super_admin: bool = False):
        with storage_errors('delete_comment'):
            comment = self.get_comment(comment_id)
            self._require_owner(comment, user_id, is_super_admin, action='delete')
            comment.delete()
        logger.info(f"Comment {comment_id} deleted by user {user_id}")

    def set_resolved(self, comment_id: int, resolved: bool) -> EditorialComment:
        with storage_errors('set_resolved'):
            comment = self.get_comment(comment_id)
            comment.resolved = resolved
            comment.save(update_fields=['resolved', 'updated_at'])
        return comment

    def comment_stats(self, article_id: int) -> Dict[str, int]:
        with storage_errors('comment_stats'):
            self._require_article(article_id)
            stats = EditorialComment.objects.filter(article_id=article_id).aggregate(
                total=Count('id'),
                resolved=Count('id', filter=Q(resolved=True)),
            )
        return {
            'total': stats['total'],
            'resolved': stats['resolved'],
            'unresolved': stats['total'] - stats['resolved'],
        }

    def _require_article(self, article_id: int):
        if not self.articles.exists(article_id):
            raise NotFoundError(
                f"Article {article_id} not found",
                code=ErrorCode.ARTICLE_NOT_FOUND,
            )

    def _require_owner(self, comment, user_id, is_super_admin, action):
        if comment.author_id != user_id and not is_super_admin:
            raise UnauthorizedError(f"Only the author may {action} comment {comment.pk}")

    def _clean_text(self, text: Optional[str]) -> str:
        max_length = getattr(settings, 'EDITORIAL_COMMENT_MAX_LENGTH', 1000)
        if not text or not text.strip():
            raise ValidationError("Comment text is required", field='text')
        if len(text) > max_length:
            raise ValidationError(
                f"Comment text must be at most {max_length} characters",
                field='text',
            )
        return text


class ArticleVersionService:
    """Numbered content snapshots and restore."""

    def __init__(self, articles: Optional[ArticleRepository] = None):
        self.articles = articles or ArticleRepository()

    def save_version(
        self,
        article_id: int,
        user_id: int,
        title: str,
        excerpt: str,
        content: Any,
        changes_summary: Optional[str] = None,
    ) -> ArticleVersion:
        """
        Store a new snapshot with the next version number.

        Numbering is serialized through a lock on the article row.
        """
        with storage_errors('save_version'):
            with transaction.atomic():
                article = self.articles.get_article(article_id, for_update=True)
                return self._create_version(
                    article.pk, user_id, title, excerpt, content, changes_summary,
                )

    def list_versions(self, article_id: int) -> List[ArticleVersion]:
        with storage_errors('list_versions'):
            self._require_article(article_id)
            return list(
                ArticleVersion.objects
                .filter(article_id=article_id)
                .select_related('changed_by')
                .order_by('-version')
            )

    def get_version(self, article_id: int, version: int) -> ArticleVersion:
        with storage_errors('get_version'):
            try:
                return (
                    ArticleVersion.objects
                    .select_related('changed_by')
                    .get(article_id=article_id, version=version)
                )
            except ArticleVersion.DoesNotExist:
                raise NotFoundError(
                    f"Version {version} of article {article_id} not found",
                    code=ErrorCode.VERSION_NOT_FOUND,
                )

    def restore_version(self, article_id: int, version: int, user_id: int) -> ArticleVersion:
        """
        Copy a stored version back into the article.

        The restore is itself recorded as a new version. Status is untouched,
        and published articles cannot be restored.
        """
        with storage_errors('restore_version'):
            with transaction.atomic():
                article = self.articles.get_article(article_id, for_update=True)
                if article.is_published:
                    raise InvalidTransitionError(
                        f"Article {article_id} is published and cannot be restored",
                        details={'current_status': article.status},
                    )
                snapshot = self.get_version(article_id, version)

                article.title = snapshot.title
                article.excerpt = snapshot.excerpt
                article.content = snapshot.content
                article.save(update_fields=['title', 'excerpt', 'content', 'updated_at'])

                restored = self._create_version(
                    article.pk,
                    user_id,
                    snapshot.title,
                    snapshot.excerpt,
                    snapshot.content,
                    f"Restored to version {version}",
                )

        logger.info(
            f"Article {article_id} restored to version {version} by user {user_id} "
            f"(new version {restored.version})"
        )
        return restored

    def compare_versions(self, article_id: int, version1: int, version2: int) -> Dict[str, Any]:
        first = self.get_version(article_id, version1)
        second = self.get_version(article_id, version2)
        return {
            'version1': first,
            'version2': second,
            'changes': {
                'title': first.title != second.title,
                'excerpt': first.excerpt != second.excerpt,
                'content': first.content != second.content,
            },
        }

    def version_stats(self, article_id: int) -> Dict[str, Any]:
        with storage_errors('version_stats'):
            self._require_article(article_id)
            stats = ArticleVersion.objects.filter(article_id=article_id).aggregate(
                total_versions=Count('id'),
                latest_version=Max('version'),
                first_version=Min('created_at'),
                last_version=Max('created_at'),
            )
        stats['latest_version'] = stats['latest_version'] or 0
        return stats

    def cleanup_old_versions(self, article_id: int, keep_last: Optional[int] = None) -> int:
        """Delete all but the newest ``keep_last`` versions. Returns the number deleted."""
        if keep_last is None:
            keep_last = getattr(settings, 'EDITORIAL_VERSION_KEEP_DEFAULT', 10)
        if keep_last < 1:
            raise ValidationError(
                "keep must be a positive integer",
                code=ErrorCode.INVALID_PARAMETERS,
                field='keep',
            )

        with storage_errors('cleanup_old_versions'):
            with transaction.atomic():
                self.articles.get_article(article_id, for_update=True)
                kept = list(
                    ArticleVersion.objects
                    .filter(article_id=article_id)
                    .order_by('-version')
                    .values_list('version', flat=True)[:keep_last]
                )
                deleted, _ = (
                    ArticleVersion.objects
                    .filter(article_id=article_id)
                    .exclude(version__in=kept)
                    .delete()
                )

        if deleted:
            logger.info(f"Deleted {deleted} old versions of article {article_id}")
        return deleted

    def _create_version(self, article_id, user_id, title, excerpt, content, changes_summary):
        latest = (
            ArticleVersion.objects
            .filter(article_id=article_id)
            .aggregate(latest=Max('version'))['latest']
        ) or 0
        number = latest + 1
        return ArticleVersion.objects.create(
            article_id=article_id,
            version=number,
            title=title,
            excerpt=excerpt or '',
            content=content if content is not None else {},
            changed_by_id=user_id,
            changes_summary=changes_summary or f"Version {number} - {timezone.now():%Y-%m-%d}",
        )

    def _require_article(self, article_id: int):
        if not self.articles.exists(article_id):
            raise NotFoundError(
                f"Article {article_id} not found",
                code=ErrorCode.ARTICLE_NOT_FOUND,
            )
