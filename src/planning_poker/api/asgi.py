"""ASGI entrypoint for the planning poker server."""

from planning_poker.api.app import create_app
from planning_poker.containers import build_container

app = create_app(build_container())
