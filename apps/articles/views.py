"""
Editorial back-office API views.

Article review workflow, editorial comments and article versions. Every view
requires an authenticated editor (or higher); errors are rendered by
apps.core.exceptions.editorial_exception_handler.
"""

from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from apps.core.exceptions import created_response, success_response
from apps.core.permissions import IsEditorialAdmin, can_override_ownership, has_role
from apps.core.throttling import BurstThrottle, DestructiveActionThrottle, StateChangeThrottle

from .serializers import (
    AddCommentSerializer,
    ArticleReviewSerializer,
    ArticleVersionSerializer,
    CleanupVersionsQuerySerializer,
    EditorialCommentSerializer,
    PendingArticleSerializer,
    PendingReviewsQuerySerializer,
    ResolveCommentSerializer,
    RestoreVersionSerializer,
    ReviewArticleSerializer,
    SaveVersionSerializer,
    UpdateCommentSerializer,
    parse_article_id,
    parse_comment_id,
    parse_version_number,
    validated_data_or_raise,
)
from .services import ArticleVersionService, EditorialCommentService, EditorialWorkflowService


class EditorialAPIView(APIView):
    """Base view for the editorial back office."""

    permission_classes = [IsAuthenticated, IsEditorialAdmin]
    throttle_classes = [BurstThrottle]
    service_class = EditorialWorkflowService

    def get_service(self):
        return self.service_class()


# ============================================================================
# Article review workflow
# ============================================================================

class SubmitForReviewView(EditorialAPIView):
    """
    POST /api/admin/article-review/submit/

    Body: {"articleId": 42}
    """
    throttle_classes = [BurstThrottle, StateChangeThrottle]

    def post(self, request):
        data = request.data if isinstance(request.data, dict) else {}
        article_id = parse_article_id(data.get('articleId'))

        article = self.get_service().submit_for_review(
            article_id,
            request.user.id,
            override=can_override_ownership(request.user),
        )

        return success_response(
            data={'articleId': article.pk, 'status': article.status},
            message="Article submitted for review",
        )


class ReviewArticleView(EditorialAPIView):
    """
    POST /api/admin/article-review/{id}/review/

    Body: {"decision": "approve|reject|needs_changes", "comments": "..."}
    """
    throttle_classes = [BurstThrottle, StateChangeThrottle]

    def post(self, request, article_id):
        article_id = parse_article_id(article_id)
        data = validated_data_or_raise(ReviewArticleSerializer(data=request.data))
        decision = data['decision']

        self.get_service().review_article(
            article_id,
            request.user.id,
            decision,
            comments=data.get('comments'),
        )

        return success_response(
            data={
                'articleId': article_id,
                'decision': decision.value,
                'reviewerId': request.user.id,
            },
            message=f"Review recorded: {decision.value}",
        )


class PendingReviewsView(EditorialAPIView):
    """
    GET /api/admin/article-review/pending/?limit=20
    """

    def get(self, request):
        params = validated_data_or_raise(PendingReviewsQuerySerializer(data=request.query_params))
        articles = self.get_service().get_pending_reviews(params.get('limit'))
        data = PendingArticleSerializer(articles, many=True).data
        return success_response(data=data, count=len(data))


class ArticleReviewHistoryView(EditorialAPIView):
    """
    GET /api/admin/article-review/{id}/history/
    """

    def get(self, request, article_id):
        article_id = parse_article_id(article_id)
        reviews = self.get_service().get_article_reviews(article_id)
        data = ArticleReviewSerializer(reviews, many=True).data
        return success_response(data=data, count=len(data))


class PublishArticleView(EditorialAPIView):
    """
    POST /api/admin/article-review/{id}/publish/
    """
    throttle_classes = [BurstThrottle, StateChangeThrottle]

    def post(self, request, article_id):
        article_id = parse_article_id(article_id)
        article = self.get_service().publish_article(article_id, request.user.id)
        return success_response(
            data={
                'articleId': article.pk,
                'status': article.status,
                'publisherId': request.user.id,
            },
            message="Article published",
        )


class WorkflowStatsView(EditorialAPIView):
    """
    GET /api/admin/article-review/stats/
    """

    def get(self, request):
        return success_response(data=self.get_service().get_workflow_stats())


# ============================================================================
# Editorial comments
# ============================================================================

class ArticleCommentsView(EditorialAPIView):
    """
    GET  /api/admin/comments/{articleId}/ - Comments, newest first
    POST /api/admin/comments/{articleId}/ - Add a comment
    """
    service_class = EditorialCommentService

    def get(self, request, article_id):
        article_id = parse_article_id(article_id)
        comments = self.get_service().list_comments(article_id)
        data = EditorialCommentSerializer(comments, many=True).data
        return success_response(data=data, count=len(data))

    def post(self, request, article_id):
        article_id = parse_article_id(article_id)
        data = validated_data_or_raise(AddCommentSerializer(data=request.data))
        comment = self.get_service().add_comment(article_id, request.user.id, data['text'])
        return created_response(
            data=EditorialCommentSerializer(comment).data,
            message="Comment added",
        )


class CommentStatsView(EditorialAPIView):
    """
    GET /api/admin/comments/{articleId}/stats/
    """
    service_class = EditorialCommentService

    def get(self, request, article_id):
        article_id = parse_article_id(article_id)
        return success_response(data=self.get_service().comment_stats(article_id))


class CommentDetailView(EditorialAPIView):
    """
    PUT    /api/admin/comments/{commentId}/edit/ - Edit text (author or super admin)
    DELETE /api/admin/comments/{commentId}/edit/ - Delete (author or super admin)
    """
    service_class = EditorialCommentService

    def get_throttles(self):
        throttles = super().get_throttles()
        if self.request.method == 'DELETE':
            throttles.append(DestructiveActionThrottle())
        return throttles

    def put(self, request, comment_id):
        comment_id = parse_comment_id(comment_id)
        data = validated_data_or_raise(UpdateCommentSerializer(data=request.data))
        comment = self.get_service().update_comment(
            comment_id,
            request.user.id,
            data['text'],
            resolved=data.get('resolved'),
            is_super_admin=has_role(request.user, 'super_admin'),
        )
        return success_response(
            data=EditorialCommentSerializer(comment).data,
            message="Comment updated",
        )

    def delete(self, request, comment_id):
        comment_id = parse_comment_id(comment_id)
        self.get_service().delete_comment(
            comment_id,
            request.user.id,
            is_super_admin=has_role(request.user, 'super_admin'),
        )
        return success_response(message="Comment deleted")


class ResolveCommentView(EditorialAPIView):
    """
    PATCH /api/admin/comments/{commentId}/resolve/

    Body: {"resolved": true}
    """
    service_class = EditorialCommentService

    def patch(self, request, comment_id):
        comment_id = parse_comment_id(comment_id)
        data = validated_data_or_raise(ResolveCommentSerializer(data=request.data))
        comment = self.get_service().set_resolved(comment_id, data['resolved'])
        return success_response(
            data=EditorialCommentSerializer(comment).data,
            message="Comment resolved" if comment.resolved else "Comment reopened",
        )


# ============================================================================
# Article versions
# ============================================================================

class ArticleVersionsView(EditorialAPIView):
    """
    GET  /api/admin/versions/{articleId}/ - Versions, newest first
    POST /api/admin/versions/{articleId}/ - Save a new version
    """
    service_class = ArticleVersionService

    def get(self, request, article_id):
        article_id = parse_article_id(article_id)
        versions = self.get_service().list_versions(article_id)
        data = ArticleVersionSerializer(versions, many=True).data
        return success_response(data=data, count=len(data))

    def post(self, request, article_id):
        article_id = parse_article_id(article_id)
        data = validated_data_or_raise(SaveVersionSerializer(data=request.data))
        version = self.get_service().save_version(
            article_id,
            request.user.id,
            data['title'],
            data['excerpt'],
            data['content'],
            changes_summary=data.get('summary'),
        )
        return created_response(
            data=ArticleVersionSerializer(version).data,
            message=f"Version {version.version} saved",
        )


class ArticleVersionDetailView(EditorialAPIView):
    """
    GET /api/admin/versions/{articleId}/{version}/
    """
    service_class = ArticleVersionService

    def get(self, request, article_id, version):
        article_id = parse_article_id(article_id)
        version = parse_version_number(version)
        snapshot = self.get_service().get_version(article_id, version)
        return success_response(data=ArticleVersionSerializer(snapshot).data)


class RestoreVersionView(EditorialAPIView):
    """
    POST /api/admin/versions/{articleId}/restore/

    Body: {"version": 3}
    """
    service_class = ArticleVersionService
    throttle_classes = [BurstThrottle, StateChangeThrottle]

    def post(self, request, article_id):
        article_id = parse_article_id(article_id)
        data = validated_data_or_raise(RestoreVersionSerializer(data=request.data))
        restored = self.get_service().restore_version(
            article_id, data['version'], request.user.id,
        )
        return success_response(
            data=ArticleVersionSerializer(restored).data,
            message=f"Article restored to version {data['version']}",
        )


class CompareVersionsView(EditorialAPIView):
    """
    GET /api/admin/versions/{articleId}/compare/{v1}/{v2}/
    """
    service_class = ArticleVersionService

    def get(self, request, article_id, version1, version2):
        article_id = parse_article_id(article_id)
        version1 = parse_version_number(version1, name='version1')
        version2 = parse_version_number(version2, name='version2')

        comparison = self.get_service().compare_versions(article_id, version1, version2)
        return success_response(data={
            'version1': ArticleVersionSerializer(comparison['version1']).data,
            'version2': ArticleVersionSerializer(comparison['version2']).data,
            'changes': comparison['changes'],
        })


class VersionStatsView(EditorialAPIView):
    """
    GET /api/admin/versions/{articleId}/stats/
    """
    service_class = ArticleVersionService

    def get(self, request, article_id):
        article_id = parse_article_id(article_id)
        return success_response(data=self.get_service().version_stats(article_id))


class CleanupVersionsView(EditorialAPIView):
    """
    DELETE /api/admin/versions/{articleId}/cleanup/?keep=10
    """
    service_class = ArticleVersionService
    throttle_classes = [BurstThrottle, DestructiveActionThrottle]

    def delete(self, request, article_id):
        article_id = parse_article_id(article_id)
        params = validated_data_or_raise(CleanupVersionsQuerySerializer(data=request.query_params))
        deleted = self.get_service().cleanup_old_versions(article_id, params.get('keep'))
        return success_response(
            data={'deleted': deleted},
            message=f"Deleted {deleted} old versions",
        )
