"""
Celery configuration for SafraReport.

Workers only deliver editorial notifications. Request IDs travel in the task
headers so worker log lines can be matched to the HTTP request that queued
them.
"""

import os
from celery import Celery
from celery.signals import task_prerun, task_postrun

# Set default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('safrareport')

# Load configuration from Django settings with CELERY namespace
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks from all installed apps
app.autodiscover_tasks()

app.conf.task_routes = {
    'apps.articles.tasks.*': {'queue': 'notifications'},
}

# Default queue if not specified
app.conf.task_default_queue = 'default'


@task_prerun.connect
def setup_task_request_context(task_id, task, args, kwargs, **signals_kwargs):
    """
    Set up request context at the start of each Celery task.

    Extracts request_id from task headers (if passed via celery_request_id_headers)
    and sets up thread-local context for logging correlation.
    """
    from apps.core.middleware import setup_celery_request_context

    if task.request.is_eager:
        # Inline run shares the calling thread, which already has a context
        return

    headers = getattr(task.request, 'headers', None) or {}
    if 'request_id' not in headers:
        # Custom headers land on the request itself with protocol 2
        request_id = getattr(task.request, 'request_id', None)
        headers = {'request_id': request_id} if request_id else {}
    setup_celery_request_context(headers)


@task_postrun.connect
def cleanup_task_request_context(task_id, task, args, kwargs, retval, state, **signals_kwargs):
    """
    Clean up request context after task completes.
    """
    from apps.core.middleware import clear_request_context

    if not task.request.is_eager:
        clear_request_context()
