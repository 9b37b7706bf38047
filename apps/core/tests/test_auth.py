"""
Tests for editorial roles, probes, and JWT authentication.
"""

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.db import OperationalError
from unittest.mock import patch
from rest_framework.test import APIClient

from apps.core.models import EditorProfile
from apps.core.permissions import can_override_ownership, get_user_role, has_role

User = get_user_model()


@pytest.fixture
def make_user(db):
    def _make(username, role='author', **extra):
        user = User.objects.create_user(username=username, password='testpass123', **extra)
        EditorProfile.objects.filter(user=user).update(role=role)
        return user
    return _make


# ============================================================================
# Role Tests
# ============================================================================

class TestRoles:

    @pytest.mark.django_db
    def test_profile_created_with_author_role(self):
        user = User.objects.create_user(username='nuevo', password='testpass123')

        assert user.editor_profile.role == 'author'
        assert get_user_role(user) == 'author'

    def test_anonymous_has_no_role(self):
        assert get_user_role(AnonymousUser()) is None
        assert has_role(AnonymousUser(), 'author') is False

    @pytest.mark.django_db
    def test_superuser_is_super_admin(self, make_user):
        root = make_user('root', is_superuser=True)

        assert get_user_role(root) == 'super_admin'

    @pytest.mark.django_db
    def test_missing_profile_falls_back_to_author(self, make_user):
        user = make_user('sin_perfil')
        EditorProfile.objects.filter(user=user).delete()

        assert get_user_role(user) == 'author'

    @pytest.mark.django_db
    @pytest.mark.parametrize('role, is_editor, overrides', [
        ('author', False, False),
        ('editor', True, False),
        ('admin', True, True),
        ('super_admin', True, True),
    ])
    def test_role_hierarchy(self, make_user, role, is_editor, overrides):
        user = make_user(f'user_{role}', role=role)

        assert has_role(user, 'editor') is is_editor
        assert can_override_ownership(user) is overrides
        assert user.editor_profile.is_reviewer is is_editor
        assert user.editor_profile.can_override is overrides


# ============================================================================
# Probe Tests
# ============================================================================

class TestProbes:

    def test_liveness(self, client):
        response = client.get('/livez/')

        assert response.status_code == 200
        assert response.json() == {'status': 'alive'}

    @pytest.mark.django_db
    def test_readiness(self, client):
        response = client.get('/readyz/')

        assert response.status_code == 200
        assert response.json() == {'status': 'ready'}

    @pytest.mark.django_db
    def test_readiness_database_down(self, client):
        with patch('apps.core.views.connection.cursor', side_effect=OperationalError('down')):
            response = client.get('/readyz/')

        assert response.status_code == 503
        assert response.json()['status'] == 'not_ready'


# ============================================================================
# JWT Tests
# ============================================================================

class TestAuthentication:

    @pytest.mark.django_db
    def test_login_returns_tokens_and_role(self, make_user):
        make_user('editora', role='editor')

        response = APIClient().post(
            '/api/auth/login/', {'username': 'editora', 'password': 'testpass123'}, format='json',
        )

        assert response.status_code == 200
        body = response.json()
        assert body['access']
        assert body['refresh']
        assert body['user']['role'] == 'editor'

    @pytest.mark.django_db
    def test_login_bad_password(self, make_user):
        make_user('editora', role='editor')

        response = APIClient().post(
            '/api/auth/login/', {'username': 'editora', 'password': 'wrong'}, format='json',
        )

        assert response.status_code == 401
        assert response.json()['code'] == 'AUTHENTICATION_REQUIRED'

    @pytest.mark.django_db
    def test_bearer_token_reaches_editorial_api(self, make_user):
        make_user('editora', role='editor')
        client = APIClient()
        tokens = client.post(
            '/api/auth/login/', {'username': 'editora', 'password': 'testpass123'}, format='json',
        ).json()

        client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

        assert client.get('/api/auth/me/').json()['username'] == 'editora'
        assert client.get('/api/admin/article-review/stats/').status_code == 200

    @pytest.mark.django_db
    def test_refresh(self, make_user):
        make_user('editora', role='editor')
        client = APIClient()
        tokens = client.post(
            '/api/auth/login/', {'username': 'editora', 'password': 'testpass123'}, format='json',
        ).json()

        response = client.post('/api/auth/refresh/', {'refresh': tokens['refresh']}, format='json')

        assert response.status_code == 200
        assert response.json()['access']
