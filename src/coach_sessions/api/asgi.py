"""ASGI entrypoint for the coach sessions API."""

from coach_sessions.api.app import create_app
from coach_sessions.containers import build_container

app = create_app(build_container())
