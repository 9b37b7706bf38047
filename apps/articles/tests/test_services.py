"""
Tests for EditorialWorkflowService.

Tests cover:
- Submit, review and publish transitions
- Invariants on published_at and the review ledger
- Lost races on the same article
- Storage failure wrapping
- Notifications queued after commit
"""

import pytest
from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core import mail
from django.db import DatabaseError, OperationalError
from django.utils import timezone

from apps.articles.models import AppendOnlyError, Article, ArticleReview
from apps.articles.repositories import ArticleRepository, ReviewLedger
from apps.articles.services import EditorialWorkflowService
from apps.articles.state_machine import ReviewDecision
from apps.core.exceptions import (
    ErrorCode,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from apps.core.models import EditorProfile

User = get_user_model()


@pytest.fixture
def service():
    return EditorialWorkflowService()


# ============================================================================
# Submit
# ============================================================================

class TestSubmitForReview:

    @pytest.mark.django_db
    def test_submit_draft(self, service, article, author):
        """Draft articles move to pending_review with submitted_at set."""
        result = service.submit_for_review(article.pk, author.id)

        article.refresh_from_db()
        assert result.status == 'pending_review'
        assert article.status == 'pending_review'
        assert article.submitted_at is not None

    @pytest.mark.django_db
    def test_resubmit_after_needs_changes(self, service, make_article, author):
        """Articles sent back for changes can be resubmitted."""
        article = make_article(status='needs_changes')

        service.submit_for_review(article.pk, author.id)

        article.refresh_from_db()
        assert article.status == 'pending_review'

    @pytest.mark.django_db
    @pytest.mark.parametrize('status', ['pending_review', 'approved', 'rejected', 'published'])
    def test_submit_from_other_status_fails(self, service, make_article, author, status):
        """Submitting from any other status fails and leaves status unchanged."""
        article = make_article(status=status)

        with pytest.raises(InvalidTransitionError):
            service.submit_for_review(article.pk, author.id)

        article.refresh_from_db()
        assert article.status == status

    @pytest.mark.django_db
    def test_submit_missing_article(self, service, author):
        with pytest.raises(NotFoundError) as exc_info:
            service.submit_for_review(999999, author.id)
        assert exc_info.value.error_code == ErrorCode.ARTICLE_NOT_FOUND

    @pytest.mark.django_db
    def test_submit_by_non_owner_without_override(self, service, article, editor):
        """Only the owner may submit unless the caller can override."""
        with pytest.raises(UnauthorizedError):
            service.submit_for_review(article.pk, editor.id)

        article.refresh_from_db()
        assert article.status == 'draft'

    @pytest.mark.django_db
    def test_submit_by_non_owner_with_override(self, service, article, admin_editor):
        service.submit_for_review(article.pk, admin_editor.id, override=True)

        article.refresh_from_db()
        assert article.status == 'pending_review'


# ============================================================================
# Review
# ============================================================================

class TestReviewArticle:

    @pytest.mark.django_db
    def test_approve_records_review_and_approval(self, service, make_article, editor):
        article = make_article(status='pending_review')

        review = service.review_article(article.pk, editor.id, 'approve', comments='Buen trabajo')

        article.refresh_from_db()
        assert article.status == 'approved'
        assert article.approved_by_id == editor.id
        assert article.approved_at == review.created_at
        assert review.decision == 'approve'
        assert review.comments == 'Buen trabajo'

    @pytest.mark.django_db
    @pytest.mark.parametrize('decision,expected', [
        ('reject', 'rejected'),
        ('needs_changes', 'needs_changes'),
        (ReviewDecision.REJECT, 'rejected'),
    ])
    def test_other_decisions(self, service, make_article, editor, decision, expected):
        article = make_article(status='pending_review')

        service.review_article(article.pk, editor.id, decision)

        article.refresh_from_db()
        assert article.status == expected
        assert article.approved_at is None
        assert ArticleReview.objects.filter(article=article).count() == 1

    @pytest.mark.django_db
    @pytest.mark.parametrize('status', ['draft', 'approved', 'needs_changes', 'rejected', 'published'])
    def test_review_outside_pending_appends_nothing(self, service, make_article, editor, status):
        """Reviewing a non-pending article fails and leaves the ledger alone."""
        article = make_article(status=status)

        with pytest.raises(InvalidTransitionError):
            service.review_article(article.pk, editor.id, 'approve')

        article.refresh_from_db()
        assert article.status == status
        assert not ArticleReview.objects.filter(article=article).exists()

    @pytest.mark.django_db
    def test_invalid_decision(self, service, make_article, editor):
        article = make_article(status='pending_review')

        with pytest.raises(ValidationError):
            service.review_article(article.pk, editor.id, 'maybe')

        assert not ArticleReview.objects.filter(article=article).exists()

    @pytest.mark.django_db
    def test_concurrent_review_loser_fails(self, make_article, editor, admin_editor):
        """
        Two reviewers read the same pending article; the second to write
        loses, and its ledger row is rolled back with it.
        """
        article = make_article(status='pending_review')
        stale = Article.objects.get(pk=article.pk)

        EditorialWorkflowService().review_article(article.pk, editor.id, 'approve')

        class StaleReadRepository(ArticleRepository):
            def get_article(self, article_id, for_update=False):
                return stale

        loser = EditorialWorkflowService(articles=StaleReadRepository())
        with pytest.raises(InvalidTransitionError):
            loser.review_article(article.pk, admin_editor.id, 'reject')

        article.refresh_from_db()
        assert article.status == 'approved'
        reviews = ArticleReview.objects.filter(article=article)
        assert reviews.count() == 1
        assert reviews.get().reviewer_id == editor.id

    @pytest.mark.django_db
    def test_second_sequential_review_fails(self, service, make_article, editor, admin_editor):
        article = make_article(status='pending_review')
        service.review_article(article.pk, editor.id, 'reject')

        with pytest.raises(InvalidTransitionError):
            service.review_article(article.pk, admin_editor.id, 'approve')

        assert ArticleReview.objects.filter(article=article).count() == 1


# ============================================================================
# Publish
# ============================================================================

class TestPublishArticle:

    @pytest.mark.django_db
    def test_publish_approved(self, service, make_article, editor):
        article = make_article(status='approved')

        service.publish_article(article.pk, editor.id)

        article.refresh_from_db()
        assert article.status == 'published'
        assert article.published_at is not None

    @pytest.mark.django_db
    @pytest.mark.parametrize('status', ['draft', 'pending_review', 'needs_changes', 'rejected'])
    def test_publish_requires_approval(self, service, make_article, editor, status):
        article = make_article(status=status)

        with pytest.raises(InvalidTransitionError):
            service.publish_article(article.pk, editor.id)

        article.refresh_from_db()
        assert article.status == status
        assert article.published_at is None

    @pytest.mark.django_db
    def test_publish_twice_keeps_first_timestamp(self, service, make_article, editor):
        article = make_article(status='approved')
        service.publish_article(article.pk, editor.id)
        article.refresh_from_db()
        first_published_at = article.published_at

        with pytest.raises(InvalidTransitionError):
            service.publish_article(article.pk, editor.id)

        article.refresh_from_db()
        assert article.published_at == first_published_at


# ============================================================================
# Queries
# ============================================================================

class TestQueries:

    @pytest.mark.django_db
    def test_pending_reviews_oldest_first(self, service, make_article):
        """limit=2 over five pending articles returns the two oldest submissions."""
        base = timezone.now() - timedelta(hours=1)
        offsets = [3, 0, 4, 1, 2]
        created = {
            offset: make_article(status='pending_review', submitted_at=base + timedelta(minutes=offset))
            for offset in offsets
        }
        make_article(status='draft')

        pending = service.get_pending_reviews(limit=2)

        assert [a.pk for a in pending] == [created[0].pk, created[1].pk]

    @pytest.mark.django_db
    def test_pending_reviews_capped_at_max(self, service, make_article, settings):
        settings.EDITORIAL_PENDING_MAX_LIMIT = 3
        for _ in range(5):
            make_article(status='pending_review')

        assert len(service.get_pending_reviews(limit=50)) == 3

    @pytest.mark.django_db
    def test_pending_reviews_rejects_non_positive_limit(self, service):
        with pytest.raises(ValidationError):
            service.get_pending_reviews(limit=0)

    @pytest.mark.django_db
    def test_article_reviews_in_created_order(self, service, make_article, editor):
        article = make_article(status='pending_review')
        service.review_article(article.pk, editor.id, 'needs_changes', comments='Ajustar titular')
        service.submit_for_review(article.pk, article.author_id)
        service.review_article(article.pk, editor.id, 'approve')

        reviews = service.get_article_reviews(article.pk)

        assert [r.decision for r in reviews] == ['needs_changes', 'approve']
        assert reviews[0].created_at <= reviews[1].created_at

    @pytest.mark.django_db
    def test_article_reviews_missing_article(self, service):
        with pytest.raises(NotFoundError):
            service.get_article_reviews(999999)

    @pytest.mark.django_db
    def test_workflow_stats_zero_filled(self, service, make_article):
        make_article(status='draft')
        make_article(status='draft')
        make_article(status='published')

        stats = service.get_workflow_stats()

        assert stats == {
            'draft': 2,
            'pending_review': 0,
            'approved': 0,
            'needs_changes': 0,
            'rejected': 0,
            'published': 1,
        }


# ============================================================================
# Scenarios
# ============================================================================

class TestScenarios:

    @pytest.mark.django_db
    def test_article_42_full_lifecycle(self, service):
        reviewer = User.objects.create_user(id=1, username='reviewer1', password='x')
        owner = User.objects.create_user(id=7, username='author7', password='x')
        EditorProfile.objects.filter(user=reviewer).update(role='editor')
        Article.objects.create(id=42, title='Precio del arroz', slug='precio-arroz', author=owner)

        service.submit_for_review(42, 7)
        assert Article.objects.get(pk=42).status == 'pending_review'

        service.review_article(42, 1, 'approve')
        assert Article.objects.get(pk=42).status == 'approved'
        assert list(ArticleReview.objects.filter(article_id=42).values_list('decision', flat=True)) == ['approve']

        service.publish_article(42, 1)
        article = Article.objects.get(pk=42)
        assert article.status == 'published'
        assert article.published_at is not None
        assert ArticleReview.objects.filter(article_id=42).count() == 1

    @pytest.mark.django_db
    def test_article_43_needs_changes_blocks_publish(self, service):
        reviewer = User.objects.create_user(id=2, username='reviewer2', password='x')
        owner = User.objects.create_user(id=8, username='author8', password='x')
        EditorProfile.objects.filter(user=reviewer).update(role='editor')
        Article.objects.create(
            id=43,
            title='Exportaciones de aguacate',
            slug='exportaciones-aguacate',
            author=owner,
            status='pending_review',
            submitted_at=timezone.now(),
        )

        service.review_article(43, 2, 'needs_changes', comments='fix lede')
        assert Article.objects.get(pk=43).status == 'needs_changes'

        with pytest.raises(InvalidTransitionError):
            service.publish_article(43, 2)


# ============================================================================
# Invariants
# ============================================================================

class TestInvariants:

    @pytest.mark.django_db
    def test_published_iff_published_at(self, service, make_article, editor, author):
        drafts = [make_article() for _ in range(3)]
        for article in drafts:
            service.submit_for_review(article.pk, author.id)
        service.review_article(drafts[0].pk, editor.id, 'approve')
        service.review_article(drafts[1].pk, editor.id, 'reject')
        service.publish_article(drafts[0].pk, editor.id)

        for article in Article.objects.all():
            assert (article.status == 'published') == (article.published_at is not None)

    @pytest.mark.django_db
    def test_ledger_rows_refuse_update(self, service, make_article, editor):
        article = make_article(status='pending_review')
        review = service.review_article(article.pk, editor.id, 'approve')

        review.comments = 'edited'
        with pytest.raises(AppendOnlyError):
            review.save()
        with pytest.raises(AppendOnlyError):
            ArticleReview.objects.filter(pk=review.pk).update(comments='edited')

    @pytest.mark.django_db
    def test_ledger_rows_refuse_delete(self, service, make_article, editor):
        article = make_article(status='pending_review')
        review = service.review_article(article.pk, editor.id, 'approve')

        with pytest.raises(AppendOnlyError):
            review.delete()
        with pytest.raises(AppendOnlyError):
            ArticleReview.objects.filter(pk=review.pk).delete()
        assert ArticleReview.objects.filter(pk=review.pk).exists()


# ============================================================================
# Storage Failures
# ============================================================================

class TestStorageFailures:

    @pytest.mark.django_db
    def test_read_failure_becomes_storage_error(self, service, article, author):
        with patch.object(ArticleRepository, 'get_article', side_effect=OperationalError('db down')):
            with pytest.raises(StorageError) as exc_info:
                service.submit_for_review(article.pk, author.id)

        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert exc_info.value.status_code == 500

    @pytest.mark.django_db
    def test_storage_failure_is_not_counted_as_rejection(self, service, article, author):
        from apps.core.metrics import transition_rejections_total

        sample = transition_rejections_total.labels(operation='submit', reason='DATABASE_ERROR')
        before = sample._value.get()

        with patch.object(ArticleRepository, 'get_article', side_effect=OperationalError('db down')):
            with pytest.raises(StorageError):
                service.submit_for_review(article.pk, author.id)

        assert sample._value.get() == before

    @pytest.mark.django_db
    def test_refusal_is_counted_as_rejection(self, service, make_article, author):
        from apps.core.metrics import transition_rejections_total

        article = make_article(status='published')
        sample = transition_rejections_total.labels(operation='submit', reason='INVALID_TRANSITION')
        before = sample._value.get()

        with pytest.raises(InvalidTransitionError):
            service.submit_for_review(article.pk, author.id)

        assert sample._value.get() == before + 1

    @pytest.mark.django_db
    def test_status_write_failure_rolls_back_ledger(self, service, make_article, editor):
        """If the status write fails, the ledger append is not observed either."""
        article = make_article(status='pending_review')

        with patch.object(ArticleRepository, 'compare_and_set_status', side_effect=DatabaseError('write failed')):
            with pytest.raises(StorageError):
                service.review_article(article.pk, editor.id, 'approve')

        article.refresh_from_db()
        assert article.status == 'pending_review'
        assert not ArticleReview.objects.filter(article=article).exists()

    @pytest.mark.django_db
    def test_ledger_failure_leaves_status(self, service, make_article, editor):
        article = make_article(status='pending_review')

        with patch.object(ReviewLedger, 'append', side_effect=DatabaseError('insert failed')):
            with pytest.raises(StorageError):
                service.review_article(article.pk, editor.id, 'approve')

        article.refresh_from_db()
        assert article.status == 'pending_review'


# ============================================================================
# Notifications
# ============================================================================

class TestNotifications:

    @pytest.mark.django_db
    def test_submit_queues_after_commit(self, service, article, author, editor, django_capture_on_commit_callbacks):
        with patch('apps.articles.tasks.send_editorial_notification.apply_async') as apply_async:
            with django_capture_on_commit_callbacks(execute=False) as callbacks:
                service.submit_for_review(article.pk, author.id)

            assert len(callbacks) == 1
            apply_async.assert_not_called()

            callbacks[0]()

        kwargs = apply_async.call_args.kwargs['kwargs']
        assert kwargs['notification_type'] == 'article_submitted'
        assert kwargs['recipient_id'] == editor.id
        assert kwargs['article_id'] == article.pk

    @pytest.mark.django_db
    def test_failed_transition_queues_nothing(self, service, make_article, editor, django_capture_on_commit_callbacks):
        article = make_article(status='draft')

        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            with pytest.raises(InvalidTransitionError):
                service.review_article(article.pk, editor.id, 'approve')

        assert callbacks == []

    @pytest.mark.django_db
    def test_review_emails_author_when_enabled(self, service, make_article, editor, author, settings, django_capture_on_commit_callbacks):
        settings.EDITORIAL_NOTIFY_EMAIL = True
        article = make_article(status='pending_review')

        with django_capture_on_commit_callbacks(execute=True):
            service.review_article(article.pk, editor.id, 'needs_changes', comments='Revisar fuentes')

        assert len(mail.outbox) == 1
        assert mail.outbox[0].to == [author.email]
        assert 'Revisar fuentes' in mail.outbox[0].body

    @pytest.mark.django_db
    def test_notifications_disabled(self, service, article, author, editor, settings, django_capture_on_commit_callbacks):
        settings.EDITORIAL_NOTIFICATIONS_ENABLED = False

        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            service.submit_for_review(article.pk, author.id)

        assert callbacks == []

    @pytest.mark.django_db
    def test_broker_failure_does_not_undo_publish(self, service, make_article, editor, django_capture_on_commit_callbacks):
        article = make_article(status='approved')

        with patch(
            'apps.articles.tasks.send_editorial_notification.apply_async',
            side_effect=ConnectionError('broker down'),
        ):
            with django_capture_on_commit_callbacks(execute=True) as callbacks:
                service.publish_article(article.pk, editor.id)

        assert len(callbacks) == 1
        article.refresh_from_db()
        assert article.status == 'published'

    @pytest.mark.django_db
    def test_broker_failure_publish_api_still_succeeds(self, editor_client, make_article, django_capture_on_commit_callbacks):
        article = make_article(status='approved')

        with patch(
            'apps.articles.tasks.send_editorial_notification.apply_async',
            side_effect=ConnectionError('broker down'),
        ) as apply_async:
            with django_capture_on_commit_callbacks(execute=True):
                response = editor_client.post(f'/api/admin/article-review/{article.pk}/publish/')

        assert response.status_code == 200
        assert response.json()['data']['status'] == 'published'
        apply_async.assert_called_once()
        assert Article.objects.get(pk=article.pk).status == 'published'
