# app/prediction_client.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Type

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from app.errors import (
    ConfigurationError,
    GenerationError,
    PredictionCanceledError,
    PredictionFailedError,
    PredictionTimeoutError,
    SubmissionRejectedError,
    UnexpectedOutputError,
    UpstreamTransportError,
)
from app.settings import DEFAULT_BASE_URL, DEFAULT_MODEL_VERSION, Settings

log = logging.getLogger(__name__)


class PredictionStatus(str, Enum):
    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (PredictionStatus.SUCCEEDED, PredictionStatus.FAILED, PredictionStatus.CANCELED)


class Prediction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    status: PredictionStatus
    output: Any = None
    error: Any = None
    logs: Optional[str] = None


# ---------------------------------------- Output extraction ---------------------------------------- #
# The scribble model returns [preprocessed_input, styled_result]; the last, most processed
# image is the one we want. Strategies are tried in order, the first URL wins.
OutputStrategy = Callable[[Sequence[Any]], Optional[str]]


def _is_http_url(value: Any) -> bool:
    return isinstance(value, str) and (value.startswith("http://") or value.startswith("https://"))


def at_index(index: int) -> OutputStrategy:
    def pick(output: Sequence[Any]) -> Optional[str]:
        if len(output) > index and _is_http_url(output[index]):
            return output[index]
        return None

    pick.__name__ = f"at_index_{index}"
    return pick


DEFAULT_OUTPUT_STRATEGIES: tuple[OutputStrategy, ...] = (at_index(1), at_index(0))


def extract_result_url(output: Any, strategies: Sequence[OutputStrategy] = DEFAULT_OUTPUT_STRATEGIES) -> str:
    """Pick the result image URL from a prediction output list."""
    if not isinstance(output, list) or not output:
        raise UnexpectedOutputError(f"unexpected output shape: expected a non-empty list of URLs, got {output!r}")
    for strategy in strategies:
        url = strategy(output)
        if url:
            log.info("Picked prediction output via %s", getattr(strategy, "__name__", "strategy"))
            return url
    raise UnexpectedOutputError(f"unexpected output shape: no valid image URL in {output!r}")


# ---------------------------------------- HTTP helpers ---------------------------------------- #
def _error_text(error: Any) -> Optional[str]:
    if error is None:
        return None
    text = str(error).strip()
    return text or None


def _response_detail(resp: httpx.Response) -> str:
    """Best-effort human message from an error response (API errors carry `detail`)."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("detail", "error", "title"):
            if body.get(key):
                return str(body[key])
    text = (resp.text or "").strip()
    if text:
        return text[:300]
    return f"HTTP {resp.status_code} from prediction service"


class PredictionClient:
    """
    Thin async client for a Replicate-style predictions API.
    - submit(): create a prediction, wait for a terminal status, return the result URL.
    - The wait is bounded by `timeout` (None disables); timed-out or cancelled waits
      cancel the upstream prediction before giving up.
    """

    def __init__(
        self,
        api_token: Optional[str],
        *,
        base_url: str = DEFAULT_BASE_URL,
        model_version: str = DEFAULT_MODEL_VERSION,
        poll_interval: float = 0.5,
        timeout: Optional[float] = 300.0,
        request_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        output_strategies: Sequence[OutputStrategy] = DEFAULT_OUTPUT_STRATEGIES,
    ) -> None:
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.model_version = model_version
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.request_timeout = request_timeout
        self.output_strategies = tuple(output_strategies)
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "PredictionClient":
        return cls(
            settings.replicate_api_token,
            base_url=settings.replicate_base_url,
            model_version=settings.model_version,
            poll_interval=settings.poll_interval,
            timeout=settings.prediction_timeout,
            **kwargs,
        )

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.api_token}", "Content-Type": "application/json"},
            timeout=self.request_timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        http: httpx.AsyncClient,
        method: str,
        url: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        error_cls: Type[GenerationError] = UpstreamTransportError,
    ) -> Prediction:
        try:
            resp = await http.request(method, url, json=json)
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(f"Prediction service request failed: {exc}") from exc
        if resp.status_code >= 400:
            detail = _response_detail(resp)
            log.error("Prediction service returned %s for %s %s: %s", resp.status_code, method, url, detail)
            raise error_cls(detail)
        try:
            return Prediction.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise UnexpectedOutputError(f"Unexpected prediction payload: {exc}") from exc

    # ---- lifecycle steps ----
    async def create(self, http: httpx.AsyncClient, payload: Dict[str, Any]) -> Prediction:
        body = {"version": self.model_version, "input": payload}
        return await self._request(http, "POST", "/v1/predictions", json=body, error_cls=SubmissionRejectedError)

    async def reload(self, http: httpx.AsyncClient, prediction_id: str) -> Prediction:
        return await self._request(http, "GET", f"/v1/predictions/{prediction_id}")

    async def cancel(self, http: httpx.AsyncClient, prediction_id: str) -> None:
        try:
            await self._request(http, "POST", f"/v1/predictions/{prediction_id}/cancel")
        except GenerationError as exc:
            # The prediction may already be terminal; the caller is giving up either way.
            log.warning("Could not cancel prediction %s: %s", prediction_id, exc)

    async def _poll(self, http: httpx.AsyncClient, prediction: Prediction) -> Prediction:
        while not prediction.status.is_terminal:
            await asyncio.sleep(self.poll_interval)
            prediction = await self.reload(http, prediction.id)
            log.debug("Prediction %s status=%s", prediction.id, prediction.status.value)
        return prediction

    async def wait(self, http: httpx.AsyncClient, prediction: Prediction) -> Prediction:
        """Poll until terminal. Timeout and task cancellation both cancel upstream."""
        try:
            if self.timeout is None:
                return await self._poll(http, prediction)
            return await asyncio.wait_for(self._poll(http, prediction), self.timeout)
        except asyncio.TimeoutError:
            log.error("Prediction %s timed out after %.1fs", prediction.id, self.timeout)
            await self.cancel(http, prediction.id)
            raise PredictionTimeoutError(f"Prediction did not finish within {self.timeout:g} seconds.")
        except asyncio.CancelledError:
            log.warning("Wait for prediction %s cancelled, cancelling upstream", prediction.id)
            await self.cancel(http, prediction.id)
            raise

    def result_url(self, prediction: Prediction) -> str:
        if prediction.status is PredictionStatus.SUCCEEDED:
            log.info("Prediction %s succeeded, output=%r", prediction.id, prediction.output)
            return extract_result_url(prediction.output, self.output_strategies)
        if prediction.status is PredictionStatus.FAILED:
            log.error("Prediction %s failed: %s", prediction.id, prediction.error)
            raise PredictionFailedError(_error_text(prediction.error))
        if prediction.status is PredictionStatus.CANCELED:
            log.warning("Prediction %s was canceled", prediction.id)
            raise PredictionCanceledError(_error_text(prediction.error))
        raise GenerationError(f"Prediction ended with status: {prediction.status.value}")

    async def submit(self, image: str, prompt: str, scale: float = 9, num_samples: str = "1") -> str:
        """Run one scribble-to-image prediction and return the result image URL."""
        if not self.api_token:
            log.error("REPLICATE_API_TOKEN is not set")
            raise ConfigurationError()

        log.info("Creating prediction for model version %s, prompt=%r, image=%s...",
                 self.model_version, prompt, image[:50])
        payload = {"image": image, "prompt": prompt, "scale": scale, "num_samples": num_samples}
        async with self._http() as http:
            prediction = await self.create(http, payload)
            log.info("Prediction created id=%s status=%s", prediction.id, prediction.status.value)
            if prediction.status is PredictionStatus.FAILED:
                raise SubmissionRejectedError(_error_text(prediction.error))
            final = await self.wait(http, prediction)
        return self.result_url(final)
