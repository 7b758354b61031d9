"""HTTP server for the website.

Serves a Router over Python's threading HTTP server, one thread per request.
All site data is built before the server starts and is read-only afterwards, so
handlers share it without locking.

Key classes:
- WebServer: Binds, serves until asked to stop, then shuts down gracefully.
- RequestHandler: Converts HTTP requests to Request values and writes Responses.
"""

from __future__ import annotations

import logging
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from . import __version__
from .config import Config
from .routes import Request, Response, Router

logger = logging.getLogger(__name__)

# Request bodies are never used; at most this much is drained before replying.
MAX_DISCARD_BYTES = 1 << 20


class RequestHandler(BaseHTTPRequestHandler):
    """Dispatches every request to the server's router.

    The socket timeout is the read timeout while the request is parsed and the
    write timeout while the response is sent.
    """

    server_version = f"website/{__version__}"
    server: _HTTPServer

    def setup(self):
        self.timeout = self.server.config.read_timeout
        super().setup()

    def do_GET(self):
        self._handle(send_body=True)

    def do_HEAD(self):
        self._handle(send_body=False)

    def do_POST(self):
        self._handle(send_body=True)

    do_PUT = do_PATCH = do_DELETE = do_OPTIONS = do_POST

    def _handle(self, send_body: bool) -> None:
        self._discard_body()
        request = Request.from_target(self.command, self.path, dict(self.headers))
        try:
            response = self.server.router.dispatch(request)
        except Exception as exc:
            logger.exception("unhandled error serving request", extra={"path": request.path})
            response = Response.text(HTTPStatus.INTERNAL_SERVER_ERROR, str(exc))
        self.connection.settimeout(self.server.config.write_timeout)
        self._write_response(response, send_body)

    def _discard_body(self) -> None:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = 0
        if length > 0:
            self.rfile.read(min(length, MAX_DISCARD_BYTES))

    def _write_response(self, response: Response, send_body: bool) -> None:
        self.send_response(response.status)
        for name, value in response.headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(response.body)))
        self.end_headers()
        if send_body and response.body:
            self.wfile.write(response.body)

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


class _HTTPServer(ThreadingHTTPServer):
    """Threading server that counts in-flight requests so shutdown can drain."""

    daemon_threads = True

    def __init__(self, address: tuple[str, int], config: Config, router: Router):
        self.config = config
        self.router = router
        self._active = 0
        self._idle = threading.Condition()
        super().__init__(address, RequestHandler)

    def process_request(self, request, client_address):
        with self._idle:
            self._active += 1
        try:
            super().process_request(request, client_address)
        except Exception:
            self._done()
            raise

    def process_request_thread(self, request, client_address):
        try:
            super().process_request_thread(request, client_address)
        finally:
            self._done()

    def _done(self) -> None:
        with self._idle:
            self._active -= 1
            self._idle.notify_all()

    def wait_idle(self, timeout: float) -> bool:
        """Wait until no request is in flight; False if ``timeout`` expired."""
        with self._idle:
            return self._idle.wait_for(lambda: self._active == 0, timeout)


class WebServer:
    """HTTP server with cooperative shutdown.

    Attributes:
        config: Process configuration.
        router: Router answering requests.
    """

    def __init__(self, config: Config, router: Router):
        self.config = config
        self.router = router
        self._httpd: _HTTPServer | None = None
        self._error: BaseException | None = None

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); the real port when configured with port 0."""
        if self._httpd is None:
            return self.config.address
        host, port = self._httpd.server_address[:2]
        return host, port

    def bind(self) -> None:
        """Open the listening socket.

        Raises:
            OSError: If the address cannot be bound.
        """
        if self._httpd is None:
            self._httpd = _HTTPServer(self.config.address, self.config, self.router)

    def serve(self, stop: threading.Event) -> None:
        """Serve until ``stop`` is set, then shut down gracefully.

        If the serve loop fails it sets ``stop`` itself and the error is
        re-raised after shutdown.
        """
        self.bind()
        thread = threading.Thread(target=self._serve_forever, args=(stop,), daemon=True)
        thread.start()
        host, port = self.address
        logger.info("started http server", extra={"addr": f"{host}:{port}"})

        while not stop.wait(0.5):
            pass
        self.shutdown()
        thread.join(self.config.shutdown_timeout)
        if self._error is not None:
            raise self._error

    def _serve_forever(self, stop: threading.Event) -> None:
        assert self._httpd is not None
        try:
            self._httpd.serve_forever()
        except Exception as exc:
            logger.error(
                "http server returned, shutting down", extra={"error": str(exc)}
            )
            self._error = exc
            stop.set()
            return
        logger.info("http server shutdown")

    def shutdown(self) -> None:
        """Stop accepting connections and let in-flight requests finish.

        Requests still running after ``shutdown_timeout`` seconds are abandoned
        when the socket closes.
        """
        httpd = self._httpd
        if httpd is None:
            return
        if self._error is None:
            httpd.shutdown()
        if not httpd.wait_idle(self.config.shutdown_timeout):
            logger.error(
                "failed to shutdown http server",
                extra={"error": "timed out waiting for in-flight requests"},
            )
        httpd.server_close()
        self._httpd = None
