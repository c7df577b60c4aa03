"""ASGI entrypoint for the Beztern API."""

from beztern.api.app import create_app
from beztern.containers import build_container

app = create_app(build_container())
