"""Tests for did_wallet.server.app — HTTP handler integration."""
from __future__ import annotations

import io
import threading
from collections.abc import Iterator
from http.server import HTTPServer

import httpx
import pytest

from did_wallet.config import VerifierPolicy
from did_wallet.credentials.issuer import CredentialIssuer
from did_wallet.keys.vault import KeyVault
from did_wallet.server import routes
from did_wallet.server.app import (
    MAX_BODY_BYTES,
    VerifierHandler,
    _BadRequest,
    create_server,
)

_KEY = "0x" + "8b" * 32


@pytest.fixture(autouse=True)
def reset_server_state() -> None:
    """Reset module-level state before each test."""
    routes.reset_state()


@pytest.fixture()
def base_url() -> Iterator[str]:
    server = create_server(host="127.0.0.1", port=0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_port}"
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


class TestCreateServer:
    def test_create_server_returns_http_server(self) -> None:
        server = create_server(host="127.0.0.1", port=0)
        try:
            assert isinstance(server, HTTPServer)
        finally:
            server.server_close()

    def test_create_server_uses_correct_handler(self) -> None:
        server = create_server(host="127.0.0.1", port=0)
        try:
            assert server.RequestHandlerClass is VerifierHandler
        finally:
            server.server_close()

    def test_create_server_applies_policy(self) -> None:
        server = create_server(
            host="127.0.0.1", port=0, policy=VerifierPolicy(require_challenge=True)
        )
        try:
            _, data = routes.handle_health()
            assert data["require_challenge"] is True
        finally:
            server.server_close()


class TestLiveServer:
    def test_health(self, base_url: str) -> None:
        response = httpx.get(f"{base_url}/health", trust_env=False)
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_verify_vc(self, base_url: str) -> None:
        vault = KeyVault()
        pair = vault.from_private_key(_KEY)
        did = vault.derive_did(pair.address)
        credential = CredentialIssuer().issue({"role": "admin"}, did, did, pair.private_key)

        response = httpx.post(f"{base_url}/verify-vc", json={"jwt": credential.token}, trust_env=False)
        assert response.status_code == 200
        assert response.json()["verified"] is True

    def test_unknown_route_is_404(self, base_url: str) -> None:
        assert httpx.get(f"{base_url}/nope", trust_env=False).status_code == 404
        assert httpx.post(f"{base_url}/nope", json={}, trust_env=False).status_code == 404

    def test_invalid_json_is_400(self, base_url: str) -> None:
        response = httpx.post(
            f"{base_url}/verify-vc",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
            trust_env=False,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON"

    def test_non_object_body_is_400(self, base_url: str) -> None:
        response = httpx.post(f"{base_url}/verify-vc", json=[1, 2], trust_env=False)
        assert response.status_code == 400

    def test_empty_body_is_422(self, base_url: str) -> None:
        response = httpx.post(f"{base_url}/verify-vp", trust_env=False)
        assert response.status_code == 422

    def test_wrong_method_on_known_path_is_405(self, base_url: str) -> None:
        assert httpx.get(f"{base_url}/verify-vc", trust_env=False).status_code == 405
        assert httpx.post(f"{base_url}/health", json={}, trust_env=False).status_code == 405


class TestJsonBody:
    @staticmethod
    def _handler(headers: dict[str, str], raw: bytes = b"") -> VerifierHandler:
        handler = VerifierHandler.__new__(VerifierHandler)
        handler.headers = headers  # type: ignore[assignment]
        handler.rfile = io.BytesIO(raw)
        return handler

    def test_oversized_body_is_413(self) -> None:
        handler = self._handler({"Content-Length": str(MAX_BODY_BYTES + 1)})
        with pytest.raises(_BadRequest) as info:
            handler._json_body()
        assert info.value.status == 413
        assert info.value.body["error"] == "Payload too large"

    def test_bad_content_length_is_400(self) -> None:
        handler = self._handler({"Content-Length": "many"})
        with pytest.raises(_BadRequest) as info:
            handler._json_body()
        assert info.value.status == 400

    def test_missing_body_reads_as_empty_object(self) -> None:
        assert self._handler({})._json_body() == {}

    def test_object_body_is_returned(self) -> None:
        raw = b'{"jwt": "a.b.c"}'
        handler = self._handler({"Content-Length": str(len(raw))}, raw)
        assert handler._json_body() == {"jwt": "a.b.c"}

    def test_deeply_nested_body_is_400(self) -> None:
        raw = b"[" * 60_000
        handler = self._handler({"Content-Length": str(len(raw))}, raw)
        with pytest.raises(_BadRequest) as info:
            handler._json_body()
        assert info.value.status == 400
        assert "nesting" in info.value.body["detail"]
