"""Run prepared requests against a target with httpx."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import httpx

from reqtemplate.errors import TemplatingError
from reqtemplate.models import Context, Request
from reqtemplate.plugin import RequestTemplatingPlugin

logger = logging.getLogger(__name__)


@dataclass
class IterationResult:
    """Outcome of one test iteration."""

    index: int
    method: str
    url: str
    status_code: int | None = None
    elapsed_ms: float = 0.0
    error: str | None = None
    context: Context = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None


def to_httpx_request(request: Request) -> httpx.Request:
    """Build the httpx request for a prepared Request."""
    headers = httpx.Headers(request.headers)
    content: str | None = None
    if request.body is not None:
        if "content-type" not in headers:
            headers["Content-Type"] = request.body.content_type
        content = request.body.body
    return httpx.Request(
        request.method,
        request.url,
        params=request.query_params or None,
        headers=headers,
        content=content,
    )


def dispatch(client: httpx.Client, request: Request) -> httpx.Response:
    """Send a prepared request with ``client``."""
    return client.send(to_httpx_request(request))


def run_iterations(
    plugin: RequestTemplatingPlugin,
    base_context: Context,
    request: Request,
    iterations: int,
    client: httpx.Client,
) -> list[IterationResult]:
    """Prepare and send ``request`` once per iteration.

    Every iteration starts from its own copy of ``base_context``, so
    values written during one iteration are never seen by another. A
    preparation or transport failure fails that iteration only.

    Args:
        plugin: The pre-request hook.
        base_context: Initial variables, copied per iteration.
        request: The request template.
        iterations: Number of iterations to run.
        client: The httpx client used for dispatch.

    Returns:
        One IterationResult per iteration, in order.
    """
    results: list[IterationResult] = []
    for index in range(iterations):
        context = dict(base_context)
        result = IterationResult(index=index, method=request.method, url=request.url)
        try:
            prepared = plugin.pre_request(context, request)
        except TemplatingError as exc:
            logger.warning("Iteration %d: request preparation failed: %s", index, exc)
            result.error = str(exc)
            result.context = context
            results.append(result)
            continue

        result.url = prepared.url
        result.context = context
        start = time.monotonic()
        try:
            response = dispatch(client, prepared)
        except httpx.HTTPError as exc:
            logger.warning("Iteration %d (%s %s): %s", index, prepared.method, prepared.url, exc)
            result.error = str(exc)
        else:
            result.status_code = response.status_code
        result.elapsed_ms = (time.monotonic() - start) * 1000.0
        results.append(result)
    return results
