"""
Storage access for articles and the review ledger.

The workflow service goes through these classes instead of touching the ORM
directly so that row locking and conditional writes live in one place.
"""

import logging
from typing import Dict, List, Optional

from django.db.models import Count, F

from apps.core.exceptions import ErrorCode, NotFoundError

from .models import Article, ArticleReview

logger = logging.getLogger(__name__)


class ArticleRepository:
    """Reads and conditional writes against the ``articles`` table."""

    def get_article(self, article_id: int, for_update: bool = False) -> Article:
        """
        Fetch one article.

        ``for_update`` takes a row lock; only valid inside transaction.atomic().

        Raises:
            NotFoundError: If no article has this id.
        """
        queryset = Article.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(pk=article_id)
        except Article.DoesNotExist:
            raise NotFoundError(
                f"Article {article_id} not found",
                code=ErrorCode.ARTICLE_NOT_FOUND,
            )

    def exists(self, article_id: int) -> bool:
        return Article.objects.filter(pk=article_id).exists()

    def compare_and_set_status(
        self,
        article_id: int,
        expected: str,
        new_status: str,
        **fields,
    ) -> bool:
        """
        Set the status only if it still equals ``expected``.

        Returns True when the row was written.
        """
        updated = Article.objects.filter(pk=article_id, status=expected).update(
            status=new_status,
            **fields,
        )
        return updated == 1

    def list_pending(self, limit: int) -> List[Article]:
        """Oldest submission first; ties broken by id."""
        return list(
            Article.objects
            .filter(status='pending_review')
            .select_related('author')
            .order_by(F('submitted_at').asc(nulls_last=True), 'id')[:limit]
        )

    def count_by_status(self) -> Dict[str, int]:
        rows = (
            Article.objects
            .order_by()
            .values('status')
            .annotate(count=Count('id'))
        )
        return {row['status']: row['count'] for row in rows}


class ReviewLedger:
    """Append-only log of review decisions."""

    def append(
        self,
        article_id: int,
        reviewer_id: int,
        decision: str,
        comments: Optional[str] = None,
        created_at=None,
    ) -> ArticleReview:
        review = ArticleReview(
            article_id=article_id,
            reviewer_id=reviewer_id,
            decision=decision,
            comments=comments or '',
        )
        if created_at is not None:
            review.created_at = created_at
        review.save()
        return review

    def list_by_article(self, article_id: int) -> List[ArticleReview]:
        """Reviews for one article, oldest first."""
        return list(
            ArticleReview.objects
            .filter(article_id=article_id)
            .select_related('reviewer')
            .order_by('created_at', 'id')
        )
