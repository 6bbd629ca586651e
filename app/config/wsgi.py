"""
WSGI entry point for the user balance service.

Uvicorn serves the ASGI application in config.asgi. This callable exists
for WSGI servers such as gunicorn or mod_wsgi:

    gunicorn config.wsgi:application --workers 4

Each worker handles one balance request at a time, so concurrency comes
from the worker count and row locks in PostgreSQL keep it safe.

https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
