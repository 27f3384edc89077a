"""
Data endpoint previews

The add/edit chart form fetches a preview of the selected data endpoint and
narrows the chart types it offers from the payload's shape. A failed fetch is
never fatal: the form falls back to offering every chart type.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from classifier import ChartType, Classification, classify, unavailable
from sample_data import DATA_PREFIX, resolve_local

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = float(os.getenv("PREVIEW_TIMEOUT", "5"))


@dataclass
class Preview:
    endpoint: str
    available: bool
    data: Any = None
    classification: Classification = field(default_factory=unavailable)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "available": self.available,
            "data": self.data,
            **self.classification.to_dict(),
        }


def _ready(endpoint: str, data: Any) -> Preview:
    return Preview(endpoint, True, data, classify(data))


def _failed(endpoint: str) -> Preview:
    return Preview(endpoint, False)


async def fetch_preview(
    endpoint: str,
    timeout: Optional[float] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Preview:
    """GET ``endpoint`` and classify the JSON it returns.

    Built-in /api/data endpoints are answered locally. Any transport error,
    timeout, error status or non-JSON body gives an unavailable preview.
    """
    if endpoint.startswith(DATA_PREFIX):
        data = resolve_local(endpoint)
        if data is None:
            logger.info("Unknown data endpoint %s", endpoint)
            return _failed(endpoint)
        return _ready(endpoint, data)

    if timeout is None:
        timeout = DEFAULT_TIMEOUT
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                response = await own_client.get(endpoint)
        else:
            response = await client.get(endpoint, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        logger.warning("Preview unavailable for %s: %s", endpoint, e)
        return _failed(endpoint)
    return _ready(endpoint, data)


class FormState(str, Enum):
    idle = "idle"
    fetching = "fetching"
    ready = "ready"
    failed = "failed"
    confirmed = "confirmed"
    submitted = "submitted"


class PreviewStateError(RuntimeError):
    pass


class PreviewSession:
    """Preview state for one open add/edit chart form.

    Selecting a new endpoint while a fetch is in flight supersedes it: only
    the result for the most recent selection is applied, whatever order the
    fetches complete in.

    This is the form-side model for API clients: the server only answers
    single previews (GET /api/preview), while a client driving an add/edit
    form keeps one session per open form and passes a fetch coroutine that
    calls that route or the endpoint directly.
    """

    def __init__(self, fetch: Callable[[str], Awaitable[Preview]] = fetch_preview,
                 chart_type: Optional[ChartType] = None):
        self._fetch = fetch
        self._latest = 0
        self.state = FormState.idle
        self.endpoint: Optional[str] = None
        self.preview: Optional[Preview] = None
        self.classification = unavailable()
        self.chart_type = chart_type

    async def select(self, endpoint: str) -> Optional[Preview]:
        """Fetch a preview for ``endpoint``; returns None if it went stale."""
        if self.state is FormState.submitted:
            raise PreviewStateError("form already submitted")
        self._latest += 1
        request = self._latest
        self.endpoint = endpoint
        self.state = FormState.fetching
        self.preview = None
        self.classification = unavailable()

        preview = await self._fetch(endpoint)
        if request != self._latest:
            logger.debug("Dropping stale preview for %s", endpoint)
            return None

        self.preview = preview
        self.classification = preview.classification
        if preview.available:
            self.state = FormState.ready
            if preview.classification.default_type is not None:
                self.chart_type = preview.classification.default_type
        else:
            self.state = FormState.failed
        return preview

    def confirm(self, chart_type=None) -> ChartType:
        if self.state not in (FormState.ready, FormState.failed, FormState.confirmed):
            raise PreviewStateError(f"cannot confirm while {self.state.value}")
        chosen = chart_type if chart_type is not None else self.chart_type
        if chosen is None or not self.classification.allows(chosen):
            raise ValueError(f"chart type {chosen!r} not allowed for {self.endpoint}")
        self.chart_type = ChartType(chosen)
        self.state = FormState.confirmed
        return self.chart_type

    def submit(self) -> Dict[str, str]:
        if self.state is not FormState.confirmed:
            raise PreviewStateError(f"cannot submit while {self.state.value}")
        self.state = FormState.submitted
        return {"dataEndpoint": self.endpoint, "type": self.chart_type.value}
