"""
Shared fixtures for editorial workflow tests.
"""

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from apps.articles.models import Article
from apps.core.models import EditorProfile

User = get_user_model()


@pytest.fixture
def make_user(db):
    """Factory for users with a given editorial role."""
    def _make(username, role='author', **extra):
        user = User.objects.create_user(
            username=username,
            email=f'{username}@safrareport.com',
            password='testpass123',
            **extra,
        )
        EditorProfile.objects.filter(user=user).update(role=role)
        return user
    return _make


@pytest.fixture
def author(make_user):
    return make_user('author', role='author')


@pytest.fixture
def editor(make_user):
    return make_user('editor', role='editor')


@pytest.fixture
def admin_editor(make_user):
    return make_user('admin_editor', role='admin')


@pytest.fixture
def super_admin(make_user):
    return make_user('super_admin', role='super_admin')


@pytest.fixture
def make_article(db, author):
    """Factory for articles in any status, keeping published_at consistent."""
    counter = {'n': 0}

    def _make(status='draft', owner=None, **fields):
        counter['n'] += 1
        n = counter['n']
        if status == 'published':
            fields.setdefault('published_at', timezone.now())
        if status == 'pending_review':
            fields.setdefault('submitted_at', timezone.now())
        return Article.objects.create(
            title=fields.pop('title', f'Cosecha de cacao récord {n}'),
            slug=fields.pop('slug', f'cosecha-cacao-{n}'),
            excerpt=fields.pop('excerpt', 'Resumen del artículo'),
            content=fields.pop('content', {'type': 'doc', 'content': []}),
            author=owner or author,
            status=status,
            **fields,
        )
    return _make


@pytest.fixture
def article(make_article):
    """A draft article owned by ``author``."""
    return make_article()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def editor_client(api_client, editor):
    api_client.force_authenticate(user=editor)
    return api_client
