"""HTTP status API."""

from healthcheck.api.server import create_web_app, start_status_server

__all__ = ["create_web_app", "start_status_server"]
