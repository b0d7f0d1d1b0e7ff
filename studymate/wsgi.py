"""WSGI config for the StudyMate project."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'studymate.settings')

application = get_wsgi_application()
