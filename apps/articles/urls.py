"""
Editorial back-office API URLs.

Three groups, each mounted separately in config/urls.py:
- urlpatterns: /api/admin/article-review/
- comments_urlpatterns: /api/admin/comments/
- versions_urlpatterns: /api/admin/versions/

Ids are captured as strings so malformed values reach the views and come back
as INVALID_ARTICLE_ID / INVALID_COMMENT_ID instead of a bare 404.
"""

from django.urls import path

from .views import (
    ArticleCommentsView,
    ArticleReviewHistoryView,
    ArticleVersionDetailView,
    ArticleVersionsView,
    CleanupVersionsView,
    CommentDetailView,
    CommentStatsView,
    CompareVersionsView,
    PendingReviewsView,
    PublishArticleView,
    ResolveCommentView,
    RestoreVersionView,
    ReviewArticleView,
    SubmitForReviewView,
    VersionStatsView,
    WorkflowStatsView,
)

app_name = 'article-review'

urlpatterns = [
    path('submit/', SubmitForReviewView.as_view(), name='submit'),
    path('pending/', PendingReviewsView.as_view(), name='pending'),
    path('stats/', WorkflowStatsView.as_view(), name='stats'),
    path('<str:article_id>/review/', ReviewArticleView.as_view(), name='review'),
    path('<str:article_id>/history/', ArticleReviewHistoryView.as_view(), name='history'),
    path('<str:article_id>/publish/', PublishArticleView.as_view(), name='publish'),
]

comments_urlpatterns = [
    path('<str:comment_id>/edit/', CommentDetailView.as_view(), name='comment-detail'),
    path('<str:comment_id>/resolve/', ResolveCommentView.as_view(), name='comment-resolve'),
    path('<str:article_id>/stats/', CommentStatsView.as_view(), name='comment-stats'),
    path('<str:article_id>/', ArticleCommentsView.as_view(), name='comment-list'),
]

versions_urlpatterns = [
    path('<str:article_id>/stats/', VersionStatsView.as_view(), name='version-stats'),
    path('<str:article_id>/restore/', RestoreVersionView.as_view(), name='version-restore'),
    path('<str:article_id>/cleanup/', CleanupVersionsView.as_view(), name='version-cleanup'),
    path(
        '<str:article_id>/compare/<str:version1>/<str:version2>/',
        CompareVersionsView.as_view(),
        name='version-compare',
    ),
    path('<str:article_id>/<str:version>/', ArticleVersionDetailView.as_view(), name='version-detail'),
    path('<str:article_id>/', ArticleVersionsView.as_view(), name='version-list'),
]
