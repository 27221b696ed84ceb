"""``http`` steps: issue one request with httpx.

Config:
    url              request URL
    method           GET (default), POST, PUT, PATCH, DELETE, HEAD, OPTIONS
    headers          JSON object of header values
    body             request body (sent as-is)
    tolerateStatus   JSON list of non-2xx statuses that do not fail the step

Outputs: ``{"url", "method", "status", "headers", "body"}`` plus ``"json"``
when the response declares a JSON content type.
"""

from __future__ import annotations

from typing import Any

import httpx

from hookspine.core.errors import NetworkError, TimeoutError
from hookspine.orchestration.exceptions import HttpStatusError, MalformedStepError
from hookspine.orchestration.handlers.base import StepContext, StepHandler
from hookspine.orchestration.step_types import Step, StepType

METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")


class HttpStepHandler(StepHandler):
    """Each execution opens its own client so concurrent runs share nothing.

    ``transport`` lets callers (and tests) supply an ``httpx`` transport.
    """

    type = StepType.HTTP.value
    interpolated_keys = ("url", "headers", "body")

    def __init__(self, transport: httpx.BaseTransport | None = None):
        self._transport = transport

    def validate_config(self, step_id: str, config: dict[str, Any]) -> dict[str, Any]:
        self.require(step_id, config, "url")
        method = str(config.get("method") or "GET").upper()
        if method not in METHODS:
            raise MalformedStepError(step_id, f"unsupported HTTP method '{method}'")
        config["method"] = method
        self.decode_json(step_id, config, "headers", dict)
        self.decode_json(step_id, config, "tolerateStatus", list)
        if not all(isinstance(s, int) for s in config.get("tolerateStatus") or []):
            raise MalformedStepError(step_id, "tolerateStatus must list integer status codes")
        return config

    def execute(self, step: Step, ctx: StepContext) -> dict[str, Any]:
        url = ctx.config["url"]
        method = ctx.config["method"]
        headers = {k: str(v) for k, v in (ctx.config.get("headers") or {}).items()}
        body = ctx.config.get("body")
        tolerated = set(ctx.config.get("tolerateStatus") or [])

        try:
            with httpx.Client(transport=self._transport, timeout=ctx.timeout, follow_redirects=True) as client:
                response = client.request(method, url, headers=headers, content=body)
        except httpx.TimeoutException as e:
            raise TimeoutError(
                f"{method} {url} timed out after {ctx.timeout}s", timeout_seconds=ctx.timeout, cause=e
            ).with_context(url=url) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"{method} {url} failed: {e}", cause=e).with_context(url=url) from e

        if not response.is_success and response.status_code not in tolerated:
            raise HttpStatusError(url, response.status_code, method)

        outputs: dict[str, Any] = {
            "url": str(response.url),
            "method": method,
            "status": response.status_code,
            "headers": dict(response.headers),
            "body": response.text,
        }
        if "json" in response.headers.get("content-type", ""):
            try:
                outputs["json"] = response.json()
            except ValueError:
                outputs["json"] = None
        return outputs
