"""
URL configuration for SafraReport editorial back office.
"""

from django.contrib import admin
from django.urls import path, include

from apps.core.urls import auth_urlpatterns
from apps.articles.urls import comments_urlpatterns, versions_urlpatterns

urlpatterns = [
    path('admin/', admin.site.urls),
    # Auth endpoints
    path('api/auth/', include((auth_urlpatterns, 'auth'))),
    # Editorial review workflow
    path('api/admin/article-review/', include('apps.articles.urls')),
    path('api/admin/comments/', include((comments_urlpatterns, 'comments'))),
    path('api/admin/versions/', include((versions_urlpatterns, 'versions'))),
    # Probes and metrics
    path('', include('apps.core.urls')),
]

# Customize admin site
admin.site.site_header = "SafraReport Administration"
admin.site.site_title = "SafraReport Admin Portal"
admin.site.index_title = "Editorial Administration"
