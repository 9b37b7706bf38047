"""
Tests for article versions (service and API).
"""

import pytest

from apps.articles.models import ArticleVersion
from apps.articles.services import ArticleVersionService
from apps.core.exceptions import ErrorCode, InvalidTransitionError, NotFoundError

BASE_URL = '/api/admin/versions'


@pytest.fixture
def service():
    return ArticleVersionService()


@pytest.fixture
def three_versions(service, article, editor):
    return [
        service.save_version(article.pk, editor.id, f'Título {n}', f'Resumen {n}', {'n': n})
        for n in range(1, 4)
    ]


# ============================================================================
# Service Tests
# ============================================================================

class TestArticleVersionService:

    @pytest.mark.django_db
    def test_numbers_increase_by_one(self, three_versions):
        assert [v.version for v in three_versions] == [1, 2, 3]
        assert three_versions[0].changes_summary.startswith('Version 1 - ')

    @pytest.mark.django_db
    def test_restore_copies_and_records_new_version(self, service, article, editor, three_versions):
        restored = service.restore_version(article.pk, 1, editor.id)

        article.refresh_from_db()
        assert article.title == 'Título 1'
        assert article.content == {'n': 1}
        assert restored.version == 4
        assert restored.changes_summary == 'Restored to version 1'
        assert article.status == 'draft'

    @pytest.mark.django_db
    def test_restore_published_refused(self, service, make_article, editor):
        article = make_article(status='published')
        service.save_version(article.pk, editor.id, 'Viejo', '', {})

        with pytest.raises(InvalidTransitionError):
            service.restore_version(article.pk, 1, editor.id)

    @pytest.mark.django_db
    def test_missing_version(self, service, article):
        with pytest.raises(NotFoundError) as exc_info:
            service.get_version(article.pk, 7)
        assert exc_info.value.error_code == ErrorCode.VERSION_NOT_FOUND

    @pytest.mark.django_db
    def test_compare(self, service, article, editor):
        service.save_version(article.pk, editor.id, 'Mismo', 'A', {'a': 1})
        service.save_version(article.pk, editor.id, 'Mismo', 'B', {'a': 1})

        comparison = service.compare_versions(article.pk, 1, 2)

        assert comparison['changes'] == {'title': False, 'excerpt': True, 'content': False}

    @pytest.mark.django_db
    def test_cleanup_keeps_newest(self, service, article, three_versions):
        deleted = service.cleanup_old_versions(article.pk, keep_last=2)

        assert deleted == 1
        assert list(
            ArticleVersion.objects.filter(article=article).values_list('version', flat=True)
        ) == [3, 2]

    @pytest.mark.django_db
    def test_stats(self, service, article, three_versions):
        stats = service.version_stats(article.pk)

        assert stats['total_versions'] == 3
        assert stats['latest_version'] == 3
        assert stats['first_version'] <= stats['last_version']


# ============================================================================
# API Tests
# ============================================================================

class TestVersionsAPI:

    @pytest.mark.django_db
    def test_save_and_list(self, editor_client, article):
        response = editor_client.post(
            f'{BASE_URL}/{article.pk}/',
            {'title': 'Nuevo', 'excerpt': 'Resumen', 'content': {'type': 'doc'}, 'summary': 'Primer borrador'},
            format='json',
        )

        assert response.status_code == 201
        assert response.json()['data']['version'] == 1

        response = editor_client.get(f'{BASE_URL}/{article.pk}/')
        body = response.json()
        assert body['count'] == 1
        assert body['data'][0]['changes_summary'] == 'Primer borrador'

    @pytest.mark.django_db
    def test_get_missing_version(self, editor_client, article):
        response = editor_client.get(f'{BASE_URL}/{article.pk}/9/')

        assert response.status_code == 404
        assert response.json()['code'] == 'VERSION_NOT_FOUND'

    @pytest.mark.django_db
    def test_restore(self, editor_client, article, three_versions):
        response = editor_client.post(f'{BASE_URL}/{article.pk}/restore/', {'version': 2}, format='json')

        assert response.status_code == 200
        assert response.json()['data']['version'] == 4

    @pytest.mark.django_db
    def test_compare(self, editor_client, article, three_versions):
        response = editor_client.get(f'{BASE_URL}/{article.pk}/compare/1/3/')

        assert response.status_code == 200
        data = response.json()['data']
        assert data['version1']['version'] == 1
        assert data['version2']['version'] == 3
        assert data['changes']['title'] is True

    @pytest.mark.django_db
    def test_cleanup(self, editor_client, article, three_versions):
        response = editor_client.delete(f'{BASE_URL}/{article.pk}/cleanup/?keep=1')

        assert response.status_code == 200
        assert response.json()['data'] == {'deleted': 2}

    @pytest.mark.django_db
    def test_invalid_version_number(self, editor_client, article):
        response = editor_client.get(f'{BASE_URL}/{article.pk}/compare/1/x/')

        assert response.status_code == 400
        assert response.json()['code'] == 'INVALID_PARAMETERS'
