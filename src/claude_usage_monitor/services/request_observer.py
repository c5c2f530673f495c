"""Passive capture of Claude.ai API requests made by the usage page."""

import logging

import orjson

from claude_usage_monitor.context import MonitorContext
from claude_usage_monitor.services.api_schema import match_endpoint
from claude_usage_monitor.types.capture import CapturedEndpoint, CapturedRequest, EndpointKind

logger = logging.getLogger(__name__)

API_PATH_MARKER = "/api/"


class RequestObserver:
    """Records API endpoints seen during one page lifetime.

    Requests are observed only, never paused or modified. For each
    distinguished endpoint the most recently seen URL wins.
    """

    def __init__(self, context: MonitorContext | None = None):
        self._context = context or MonitorContext()
        self.endpoints: list[CapturedEndpoint] = []
        self.usage: CapturedRequest | None = None
        self.credits_url: str | None = None
        self.overage_url: str | None = None

    def attach(self, page):
        page.on("request", self.on_request)
        page.on("response", self.on_response)

    def clear(self):
        self.endpoints = []
        self.usage = None
        self.credits_url = None
        self.overage_url = None

    def on_request(self, request):
        url = request.url
        if API_PATH_MARKER not in url:
            return

        self._context.debug("[REQUEST] %s %s", request.method, url)
        self.endpoints.append(CapturedEndpoint(method=request.method, url=url))

        kind = match_endpoint(url)
        if kind is EndpointKind.USAGE:
            headers = dict(request.headers)
            headers["Content-Type"] = "application/json"
            self.usage = CapturedRequest(url=url, headers=headers)
            logger.debug("Captured usage endpoint: %s", url)
        elif kind is EndpointKind.PREPAID_CREDITS:
            self.credits_url = url
            logger.debug("Captured credits endpoint: %s", url)
        elif kind is EndpointKind.OVERAGE_SPEND_LIMIT:
            self.overage_url = url
            logger.debug("Captured overage endpoint: %s", url)

    async def on_response(self, response):
        if not self._context.debug_enabled:
            return
        url = response.url
        if API_PATH_MARKER not in url or response.status != 200:
            return
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return
        try:
            data = await response.json()
        except Exception as e:
            self._context.debug("[RESPONSE] %s (unreadable body: %s)", url, e)
            return
        self._context.debug(
            "[RESPONSE] %s\n%s", url,
            orjson.dumps(data, option=orjson.OPT_INDENT_2).decode(),
        )

    def summary(self) -> dict:
        return {
            "hasApiEndpoint": self.usage is not None,
            "hasApiHeaders": bool(self.usage and self.usage.headers),
            "hasCreditsEndpoint": self.credits_url is not None,
            "hasOverageEndpoint": self.overage_url is not None,
            "capturedEndpointsCount": len(self.endpoints),
        }
