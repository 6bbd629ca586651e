"""
ASGI config for the Django application.

ASGI (Asynchronous Server Gateway Interface) is the successor to WSGI.
Uvicorn uses this entry point to serve the application:

    uvicorn config.asgi:application --host 0.0.0.0 --port 8000

Balance operations are synchronous; Django runs them in a thread pool
under ASGI, one request per worker thread.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

# Set the default Django settings module for the ASGI application
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
