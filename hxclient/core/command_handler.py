"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), turns them into
Request objects, runs them through the Client and hands the results to the
console display.
"""

import logging
from typing import Mapping, Optional

from hxclient.core.client import Client
from hxclient.core.exceptions import HxClientError
from hxclient.domain.models.common import HEADER_CONTENT_TYPE
from hxclient.domain.models.context import RequestContext
from hxclient.domain.models.http import Request
from hxclient.infrastructure.cli.display import ConsoleDisplay

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to the client."""

    def __init__(self, client: Client, ui: ConsoleDisplay):
        self.client = client
        self.ui = ui

    async def handle_request(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        data: Optional[str] = None,
        content_type: Optional[str] = None,
        timeout: Optional[float] = None,
        show_headers: bool = False,
        idempotent: bool = False,
    ) -> bool:
        """Executes one request and displays the outcome.

        Args:
            method: HTTP method.
            url: Absolute http(s) URL.
            headers: Extra request headers.
            data: Request body, sent UTF-8 encoded.
            content_type: Content-Type for the body, if any.
            timeout: Overall deadline for the call in seconds (None for no deadline).
            show_headers: Also print the response headers.
            idempotent: Attach an Idempotency-Key header (POST and PATCH only).

        Returns:
            True if the call produced a response, False if it failed.
        """
        logger.info(f"Handling '{method}' command for: {url}")
        ctx = RequestContext.with_timeout(timeout) if timeout else RequestContext.background()
        try:
            content = data.encode("utf-8") if data is not None else None
            request = Request.build(method, url, headers, content)
            if content_type:
                request.set_header(HEADER_CONTENT_TYPE, content_type)
            if idempotent:
                request.set_idempotency_key()

            response = await self.client.do(ctx, request)
        except HxClientError as e:
            logger.error(f"{method} {url} failed: {e}")
            self.ui.display_error(f"{type(e).__name__}: {e}")
            return False

        self.ui.display_response(response, show_headers=show_headers, show_body=method != "HEAD")
        return True

    async def handle_clear_cache(self) -> bool:
        """Handles the 'clear-cache' command."""
        logger.info("Handling 'clear-cache' command.")
        if self.client.cache is None:
            self.ui.display_info("Response caching is disabled; nothing to clear.")
            return True
        try:
            await self.client.cache.clear()
        except HxClientError as e:
            logger.error(f"Failed to clear cache: {e}", exc_info=True)
            self.ui.display_error(f"Failed to clear cache: {e}")
            return False
        self.ui.display_info("Cache cleared successfully.")
        return True
