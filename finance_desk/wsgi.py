"""WSGI config for the finance_desk project."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'finance_desk.settings')

application = get_wsgi_application()
