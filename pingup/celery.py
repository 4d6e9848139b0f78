"""Celery application for PingUp delayed jobs"""
import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'pingup.settings')

app = Celery('pingup')

# All CELERY_* keys in Django settings configure the app
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
