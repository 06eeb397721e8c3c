"""ASGI entrypoint for the Platewise API."""

from platewise.api.app import create_app
from platewise.containers import build_container

app = create_app(build_container())
