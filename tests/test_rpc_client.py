from __future__ import annotations

import json
from typing import Any, Callable, List

import httpx
import pytest

from editor_shell import RpcClient, RpcClientError
from conftest import make_snapshot

BASE = "http://localhost:3000"


def _client(handler: Callable[[httpx.Request], httpx.Response], seen: List[httpx.Request]) -> RpcClient:
    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return RpcClient(BASE + "/", transport=httpx.MockTransport(_record))


def _data(value: Any) -> httpx.Response:
    return httpx.Response(200, json={"result": {"data": value}})


def test_queries_use_get_under_rpc_prefix() -> None:
    seen: List[httpx.Request] = []
    with _client(lambda r: _data("ok"), seen) as rpc:
        assert rpc.health() == "ok"
        assert rpc.get_document() == "ok"

    assert [(r.method, str(r.url)) for r in seen] == [
        ("GET", f"{BASE}/api/trpc/health"),
        ("GET", f"{BASE}/api/trpc/document.getDocument"),
    ]


def test_save_posts_snapshot_as_json() -> None:
    seen: List[httpx.Request] = []
    snap = make_snapshot(2)
    with _client(lambda r: _data({"success": True}), seen) as rpc:
        assert rpc.save_document(snap) == {"success": True}

    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/trpc/document.saveDocument"
    assert json.loads(seen[0].content) == snap


def test_generate_sends_scale_only_when_given() -> None:
    seen: List[httpx.Request] = []
    ok = _data({"success": True, "imageUrl": "https://x/out.png"})
    with _client(lambda r: ok, seen) as rpc:
        assert rpc.generate_image_from_scribble("<svg/>", "a cat") == "https://x/out.png"
        rpc.generate_image_from_scribble("<svg/>", "a cat", 3.0)

    assert json.loads(seen[0].content) == {"svgString": "<svg/>", "prompt": "a cat"}
    assert json.loads(seen[1].content) == {"svgString": "<svg/>", "prompt": "a cat", "scale": 3.0}


def test_error_envelope_becomes_client_error() -> None:
    envelope = {
        "error": {
            "message": "Prediction failed after processing.",
            "code": "INTERNAL_SERVER_ERROR",
            "data": {"code": "INTERNAL_SERVER_ERROR", "httpStatus": 500, "path": "ai.generateImageFromScribble"},
        }
    }
    with _client(lambda r: httpx.Response(500, json=envelope), []) as rpc:
        with pytest.raises(RpcClientError) as info:
            rpc.generate_image_from_scribble("<svg/>", "a cat")

    assert info.value.code == "INTERNAL_SERVER_ERROR"
    assert info.value.message == "Prediction failed after processing."


def test_non_envelope_error_keeps_status() -> None:
    with _client(lambda r: httpx.Response(502, text="Bad Gateway"), []) as rpc:
        with pytest.raises(RpcClientError, match="HTTP 502"):
            rpc.health()


def test_generation_without_url_is_unknown_server_error() -> None:
    with _client(lambda r: _data({"success": True}), []) as rpc:
        with pytest.raises(RpcClientError) as info:
            rpc.generate_image_from_scribble("<svg/>", "a cat")
    assert info.value.message == "Image generation failed: Unknown server error"


def test_missing_result_is_bad_response() -> None:
    with _client(lambda r: httpx.Response(200, json={"nope": 1}), []) as rpc:
        with pytest.raises(RpcClientError) as info:
            rpc.get_document()
    assert info.value.code == "BAD_RESPONSE"


def test_transport_failure() -> None:
    def _down(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _client(_down, []) as rpc:
        with pytest.raises(RpcClientError) as info:
            rpc.get_document()
    assert info.value.code == "TRANSPORT_ERROR"


def test_default_base_url_follows_deployment_settings() -> None:
    from app.settings import get_settings

    rpc = RpcClient(transport=httpx.MockTransport(lambda r: _data("ok")))
    try:
        assert rpc.base_url == get_settings().base_url
    finally:
        rpc.close()
