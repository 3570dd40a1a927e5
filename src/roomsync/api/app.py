"""ASGI application for the role selected by APP_ROLE."""

from roomsync.api.factory import create_app

app = create_app()
