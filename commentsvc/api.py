"""HTTP endpoint: server setup, CORS and JSON response helpers."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import timedelta
from fnmatch import fnmatchcase
from http import HTTPStatus
from typing import Any, Optional

from flask import Blueprint, Flask, Response, request
from werkzeug.serving import make_server

from .bus import _to_json

log = logging.getLogger(__name__)

DEFAULT_PORT = 9999
ALLOW_ORIGINS = ("https:/*", "http:/*")
ALLOW_METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
ALLOW_HEADERS = ("Accept", "Authorization", "Content-Type", "X-CSRF-Token")
EXPOSE_HEADERS = ("Content-Length",)
MAX_AGE = timedelta(hours=12)


class Controller(ABC):
    """Registers a feature's routes on the service's route group."""

    @abstractmethod
    def routes(self, router_group: Blueprint) -> None: ...


def _respond(status: int, error: bool, message: str, content: Any = None) -> Response:
    text = _to_json({"error": error, "message": message, "content": content}, indent=4)
    return Response(text, status=status, content_type="application/json; charset=utf-8")


def send_ok() -> Response:
    return _respond(HTTPStatus.OK, False, "200 OK")


def send_ok_with_result(result: Any) -> Response:
    return _respond(HTTPStatus.OK, False, "200 OK", result)


def send_failure(http_status: int, error_message: str) -> Response:
    return _respond(http_status, True, error_message)


def send_not_found(error_message: str) -> Response:
    return send_failure(HTTPStatus.NOT_FOUND, error_message)


def send_internal_server_error(error_message: str) -> Response:
    return send_failure(HTTPStatus.INTERNAL_SERVER_ERROR, error_message)


def send_bad_request(error_message: str) -> Response:
    return send_failure(HTTPStatus.BAD_REQUEST, error_message)


def _allowed_origin() -> Optional[str]:
    origin = request.headers.get("Origin")
    if origin and any(fnmatchcase(origin, pattern) for pattern in ALLOW_ORIGINS):
        return origin
    return None


def _cors_before() -> Optional[Response]:
    if not request.headers.get("Origin"):
        return None
    if _allowed_origin() is None:
        return Response(status=HTTPStatus.FORBIDDEN)
    if request.method == "OPTIONS":
        response = Response(status=HTTPStatus.NO_CONTENT)
        response.headers["Access-Control-Allow-Methods"] = ",".join(ALLOW_METHODS)
        response.headers["Access-Control-Allow-Headers"] = ",".join(ALLOW_HEADERS)
        response.headers["Access-Control-Max-Age"] = str(int(MAX_AGE.total_seconds()))
        return response
    return None


def _cors_after(response: Response) -> Response:
    origin = _allowed_origin()
    if origin:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        if request.method != "OPTIONS":
            response.headers["Access-Control-Expose-Headers"] = ",".join(EXPOSE_HEADERS)
        response.vary.add("Origin")
    return response


class Api:
    """The service's HTTP endpoint."""

    def __init__(self, env: str, controllers: Iterable[Controller]) -> None:
        self.port = DEFAULT_PORT
        self.env = env
        self.controllers = list(controllers)

    def routes(self) -> Flask:
        """Build the application with CORS and every controller's routes."""
        app = Flask("commentsvc")
        app.before_request(_cors_before)
        app.after_request(_cors_after)
        group = Blueprint("commentservice", "commentsvc", url_prefix=f"/{self.env}/commentservice")
        for controller in self.controllers:
            controller.routes(group)
        app.register_blueprint(group)
        return app

    def run(self, stop: threading.Event) -> None:
        """Serve requests until stop is set, then shut the server down."""
        server = make_server("0.0.0.0", self.port, self.routes(), threaded=True)
        log.info("Starting CommentService Api Server on port %d", self.port)
        worker = threading.Thread(target=server.serve_forever, daemon=True)
        worker.start()
        try:
            stop.wait()
        finally:
            server.shutdown()
            worker.join()
            server.server_close()