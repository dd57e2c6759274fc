"""
WSGI config for the edtriage project.

It exposes the WSGI callable as a module-level variable named ``application``.
WebSocket alerts need the ASGI entrypoint in ``edtriage.asgi`` instead.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'edtriage.settings')

application = get_wsgi_application()
