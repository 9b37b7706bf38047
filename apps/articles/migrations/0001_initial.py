# Generated migration for articles and the editorial workflow tables

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Article',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, editable=False, help_text='Timestamp when record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated', verbose_name='Updated At')),
                ('title', models.CharField(help_text='Article headline', max_length=500, verbose_name='Title')),
                ('slug', models.SlugField(help_text='URL slug', max_length=255, unique=True, verbose_name='Slug')),
                ('excerpt', models.TextField(blank=True, help_text='Short summary shown in listings', verbose_name='Excerpt')),
                ('content', models.JSONField(blank=True, default=dict, help_text='Rich-text editor document', verbose_name='Content')),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('pending_review', 'Pending Review'), ('approved', 'Approved'), ('needs_changes', 'Needs Changes'), ('rejected', 'Rejected'), ('published', 'Published')], db_index=True, default='draft', help_text='Current editorial workflow status', max_length=20, verbose_name='Status')),
                ('submitted_at', models.DateTimeField(blank=True, help_text='When the article last entered the review queue', null=True, verbose_name='Submitted At')),
                ('approved_at', models.DateTimeField(blank=True, null=True, verbose_name='Approved At')),
                ('published_at', models.DateTimeField(blank=True, db_index=True, help_text='Set once, when the article is published', null=True, verbose_name='Published At')),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_articles', to=settings.AUTH_USER_MODEL, verbose_name='Approved By')),
                ('author', models.ForeignKey(help_text='Owning user, fixed at creation', on_delete=django.db.models.deletion.PROTECT, related_name='articles', to=settings.AUTH_USER_MODEL, verbose_name='Author')),
            ],
            options={
                'verbose_name': 'Article',
                'verbose_name_plural': 'Articles',
                'db_table': 'articles',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'submitted_at'], name='articles_status_submitted_idx'),
                    models.Index(fields=['author', 'status'], name='articles_author_status_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=(
                            models.Q(status='published', published_at__isnull=False)
                            | (~models.Q(status='published') & models.Q(published_at__isnull=True))
                        ),
                        name='articles_published_at_matches_status',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='ArticleReview',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('decision', models.CharField(choices=[('approve', 'Approve'), ('reject', 'Reject'), ('needs_changes', 'Needs Changes')], max_length=20, verbose_name='Decision')),
                ('comments', models.TextField(blank=True, help_text='Optional reviewer notes', verbose_name='Comments')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False, verbose_name='Created At')),
                ('article', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reviews', to='articles.article', verbose_name='Article')),
                ('reviewer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='article_reviews', to=settings.AUTH_USER_MODEL, verbose_name='Reviewer')),
            ],
            options={
                'verbose_name': 'Article Review',
                'verbose_name_plural': 'Article Reviews',
                'db_table': 'article_reviews',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['article', 'created_at'], name='reviews_article_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='EditorialComment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, editable=False, help_text='Timestamp when record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated', verbose_name='Updated At')),
                ('text', models.TextField(verbose_name='Text')),
                ('resolved', models.BooleanField(db_index=True, default=False, verbose_name='Resolved')),
                ('article', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='editorial_comments', to='articles.article', verbose_name='Article')),
                ('author', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='editorial_comments', to=settings.AUTH_USER_MODEL, verbose_name='Author')),
            ],
            options={
                'verbose_name': 'Editorial Comment',
                'verbose_name_plural': 'Editorial Comments',
                'db_table': 'editorial_comments',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='ArticleVersion',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('version', models.PositiveIntegerField(help_text='1-based, increments per article', verbose_name='Version')),
                ('title', models.CharField(max_length=500, verbose_name='Title')),
                ('excerpt', models.TextField(blank=True, verbose_name='Excerpt')),
                ('content', models.JSONField(blank=True, default=dict, verbose_name='Content')),
                ('changes_summary', models.CharField(blank=True, max_length=500, verbose_name='Changes Summary')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False, verbose_name='Created At')),
                ('article', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='versions', to='articles.article', verbose_name='Article')),
                ('changed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='article_versions', to=settings.AUTH_USER_MODEL, verbose_name='Changed By')),
            ],
            options={
                'verbose_name': 'Article Version',
                'verbose_name_plural': 'Article Versions',
                'db_table': 'article_versions',
                'ordering': ['-version'],
                'constraints': [
                    models.UniqueConstraint(fields=('article', 'version'), name='article_versions_unique_number'),
                ],
            },
        ),
    ]
