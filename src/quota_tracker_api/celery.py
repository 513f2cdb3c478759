import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('quota_tracker_api')

# every CELERY_* Django setting configures the app
app.config_from_object('django.conf:settings', namespace='CELERY')

app.autodiscover_tasks(['quota_tracker_api'])
