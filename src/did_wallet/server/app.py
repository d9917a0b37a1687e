"""Verifier HTTP service built on the stdlib ``http.server`` module.

Endpoints
---------
``GET  /health``             service status and active policy
``POST /verify-vc``          verify one credential token
``POST /verify-vp``          verify a presentation and every credential in it
``POST /verify-ownership``   check a ``Register DID: <did>`` ownership proof

Bodies and responses are JSON. A request that fails verification still
answers 200; the result body says why. Transport problems map to 4xx.

Run it with::

    python -m did_wallet.server.app --port 8080 --require-challenge
"""
from __future__ import annotations

import argparse
import json
import logging
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from did_wallet.config import VerifierPolicy
from did_wallet.server import routes
from did_wallet.server.models import ErrorResponse
from did_wallet.token import MAX_JSON_DEPTH, json_depth

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 64 * 1024

_Route = Callable[..., tuple[int, dict[str, object]]]

_ROUTES: dict[tuple[str, str], _Route] = {
    ("GET", "/health"): routes.handle_health,
    ("POST", "/verify-vc"): routes.handle_verify_credential,
    ("POST", "/verify-vp"): routes.handle_verify_presentation,
    ("POST", "/verify-ownership"): routes.handle_verify_ownership,
}
_KNOWN_PATHS = {path for _, path in _ROUTES}


class _BadRequest(Exception):
    """Raised while reading a request body; carries the response to send."""

    def __init__(self, status: int, error: str, detail: str) -> None:
        super().__init__(detail)
        self.status = status
        self.body = ErrorResponse(error=error, detail=detail).model_dump()


class VerifierHandler(BaseHTTPRequestHandler):
    """Dispatches requests through the ``(method, path)`` route table."""

    server_version = "did-wallet-verifier"

    def log_message(self, format: str, *args: object) -> None:
        logger.debug(format, *args)

    def do_GET(self) -> None:
        self._dispatch("GET")

    def do_POST(self) -> None:
        self._dispatch("POST")

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, method: str) -> None:
        path = urlsplit(self.path).path.rstrip("/") or "/"
        handler = _ROUTES.get((method, path))
        if handler is None:
            if path in _KNOWN_PATHS:
                self._respond(405, _error("Method not allowed", f"{method} {path}"))
            else:
                self._respond(404, _error("Not found", f"No route for {method} {path}"))
            return

        if method == "GET":
            status, payload = handler()
        else:
            try:
                body = self._json_body()
            except _BadRequest as exc:
                self._respond(exc.status, exc.body)
                return
            status, payload = handler(body)
        self._respond(status, payload)

    def _json_body(self) -> dict[str, object]:
        """Return the request body as a JSON object (``{}`` when empty)."""
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            raise _BadRequest(400, "Invalid request", "Content-Length is not a number") from None
        if length > MAX_BODY_BYTES:
            raise _BadRequest(413, "Payload too large", f"limit is {MAX_BODY_BYTES} bytes")
        if length <= 0:
            return {}

        raw = self.rfile.read(length)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise _BadRequest(400, "Invalid JSON", str(exc)) from exc
        if json_depth(text) > MAX_JSON_DEPTH:
            raise _BadRequest(400, "Invalid JSON", f"nesting deeper than {MAX_JSON_DEPTH} levels")
        try:
            decoded = json.loads(text)
        except (json.JSONDecodeError, RecursionError) as exc:
            raise _BadRequest(400, "Invalid JSON", str(exc)) from exc
        if not isinstance(decoded, dict):
            raise _BadRequest(400, "Invalid JSON", "request body must be an object")
        return decoded

    def _respond(self, status: int, payload: dict[str, object]) -> None:
        encoded = json.dumps(payload, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)


def _error(error: str, detail: str) -> dict[str, object]:
    return ErrorResponse(error=error, detail=detail).model_dump()


# ------------------------------------------------------------------
# Server lifecycle
# ------------------------------------------------------------------


def create_server(
    host: str = "0.0.0.0",
    port: int = 8080,
    policy: VerifierPolicy | None = None,
) -> ThreadingHTTPServer:
    """Bind the verifier service without starting it.

    Parameters
    ----------
    host:
        Interface to bind.
    port:
        Port to bind; ``0`` lets the OS choose (see ``server.server_port``).
    policy:
        Policy applied to every verification request.
    """
    routes.configure(policy or VerifierPolicy())
    server = ThreadingHTTPServer((host, port), VerifierHandler)
    server.daemon_threads = True
    logger.info("Verifier bound to %s:%d", host, server.server_port)
    return server


def run_server(
    host: str = "0.0.0.0",
    port: int = 8080,
    policy: VerifierPolicy | None = None,
) -> None:
    """Serve until interrupted."""
    server = create_server(host=host, port=port, policy=policy)
    logger.info("Verifier listening on http://%s:%d", host, server.server_port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Verifier stopping")
    finally:
        server.server_close()


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="did-wallet-verifier",
        description="Serve credential and presentation verification over HTTP.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", default="0.0.0.0", help="interface to bind")
    parser.add_argument("--port", type=int, default=8080, help="port to bind")
    parser.add_argument(
        "--require-challenge",
        action="store_true",
        help="reject presentations without a challenge nonce",
    )
    parser.add_argument(
        "--clock-skew",
        type=int,
        default=0,
        metavar="SECONDS",
        help="tolerance applied to nbf and exp",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="INFO",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=args.log_level)
    run_server(
        host=args.host,
        port=args.port,
        policy=VerifierPolicy(
            require_challenge=args.require_challenge,
            clock_skew_seconds=args.clock_skew,
        ),
    )


if __name__ == "__main__":
    main()
