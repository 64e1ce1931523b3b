from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from app.settings import get_settings

log = logging.getLogger(__name__)

RPC_PATH = "/api/trpc"


class RpcClientError(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


def _error_from(resp: httpx.Response) -> RpcClientError:
    try:
        body = resp.json()
    except ValueError:
        body = None
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict) and err.get("message"):
        return RpcClientError(str(err.get("code") or "INTERNAL_SERVER_ERROR"), str(err["message"]))
    return RpcClientError("INTERNAL_SERVER_ERROR", f"HTTP {resp.status_code}: {(resp.text or '')[:200]}")


class RpcClient:
    """Calls the gateway's document.* and ai.* procedures over HTTP."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: float = 30.0,
        generate_timeout: float = 330.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = (base_url if base_url is not None else get_settings().base_url).rstrip("/")
        self.generate_timeout = generate_timeout
        self._http = httpx.Client(base_url=f"{self.base_url}{RPC_PATH}", timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _call(self, method: str, path: str, *, json: Any = None, timeout: Optional[float] = None) -> Any:
        log.debug("rpc %s %s", method, path)
        try:
            if method == "GET":
                resp = self._http.get(f"/{path}")
            else:
                resp = self._http.post(f"/{path}", json=json, timeout=timeout or httpx.USE_CLIENT_DEFAULT)
        except httpx.HTTPError as exc:
            raise RpcClientError("TRANSPORT_ERROR", str(exc)) from exc
        if resp.status_code >= 400:
            raise _error_from(resp)
        try:
            return resp.json()["result"]["data"]
        except (ValueError, KeyError, TypeError) as exc:
            raise RpcClientError("BAD_RESPONSE", f"unexpected RPC response from {path}") from exc

    def health(self) -> str:
        return self._call("GET", "health")

    def get_document(self) -> Optional[Dict[str, Any]]:
        return self._call("GET", "document.getDocument")

    def save_document(self, snapshot: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("POST", "document.saveDocument", json=snapshot)

    def generate_image_from_scribble(self, svg_string: str, prompt: str, scale: Optional[float] = None) -> str:
        payload: Dict[str, Any] = {"svgString": svg_string, "prompt": prompt}
        if scale is not None:
            payload["scale"] = scale
        data = self._call("POST", "ai.generateImageFromScribble", json=payload, timeout=self.generate_timeout)
        if not isinstance(data, dict) or not data.get("success") or not data.get("imageUrl"):
            raise RpcClientError("INTERNAL_SERVER_ERROR", "Image generation failed: Unknown server error")
        return str(data["imageUrl"])
