"""
WSGI config for marketplace_project.

Exposes the WSGI callable as a module-level variable named ``application``;
gunicorn.conf.py points at it.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "marketplace_project.settings")

application = get_wsgi_application()
