# Generated migration for editor profiles

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
            name='EditorProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, editable=False, help_text='Timestamp when record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated', verbose_name='Updated At')),
                ('role', models.CharField(choices=[('author', 'Author'), ('editor', 'Editor'), ('admin', 'Administrator'), ('super_admin', 'Super Administrator')], db_index=True, default='author', help_text='Editorial role determining permissions', max_length=20, verbose_name='Role')),
                ('user', models.OneToOneField(help_text='The associated Django user account', on_delete=django.db.models.deletion.CASCADE, related_name='editor_profile', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Editor Profile',
                'verbose_name_plural': 'Editor Profiles',
                'db_table': 'editor_profiles',
            },
        ),
    ]
