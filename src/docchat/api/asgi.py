"""ASGI entrypoint for the document chat API."""

from docchat.api.app import create_app
from docchat.containers import build_container

app = create_app(build_container())
