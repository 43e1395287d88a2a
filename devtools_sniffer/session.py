"""
Target discovery over the browser's HTTP debugging endpoint.

Lists targets, opens and closes pages, and locates the inspector frontend
target that the trigger and sniffer talk to.
"""

import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import List, Optional, Dict, Any

from .connection import CDPConnection
from .exceptions import CDPError, CDPTargetNotFoundError

logger = logging.getLogger(__name__)


class Target:
    """
    A debuggable target (page, inspector frontend, worker, ...).

    Attributes:
        id: Unique target ID
        type: Target type ("page", "other", "worker", "service_worker", "browser")
        title: Page title or worker name
        url: Target URL
        webSocketDebuggerUrl: CDP WebSocket URL for this target (may be empty)
        devtoolsFrontendUrl: DevTools UI URL (optional)
    """

    def __init__(self, target_data: Dict[str, Any]):
        self.id = target_data["id"]
        self.type = target_data.get("type", "")
        self.title = target_data.get("title", "")
        self.url = target_data.get("url", "")
        self.webSocketDebuggerUrl = target_data.get("webSocketDebuggerUrl", "")
        self.devtoolsFrontendUrl = target_data.get("devtoolsFrontendUrl", "")

    def to_dict(self) -> Dict[str, Any]:
        """Convert target to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "url": self.url,
            "webSocketDebuggerUrl": self.webSocketDebuggerUrl,
            "devtoolsFrontendUrl": self.devtoolsFrontendUrl,
        }

    def __repr__(self):
        return f"Target(id={self.id!r}, type={self.type!r}, url={self.url!r})"


class CDPSession:
    """
    Client for the /json HTTP endpoints of a browser started with
    --remote-debugging-port.

    Usage:
        session = CDPSession("localhost", 9222)
        page = session.new_page("about:blank")
        inspector = session.wait_for_inspector_target("devtools", index=1)
        conn = await session.connect_to_target(inspector)

    Attributes:
        chrome_host: Browser host (default: "localhost")
        chrome_port: Browser debugging port (default: 9222)
        timeout: HTTP request timeout in seconds (default: 5s)
    """

    def __init__(
        self,
        chrome_host: str = "localhost",
        chrome_port: int = 9222,
        timeout: float = 5.0,
    ):
        if not 1 <= chrome_port <= 65535:
            raise ValueError(f"chrome_port must be 1-65535, got {chrome_port}")

        self.chrome_host = chrome_host
        self.chrome_port = chrome_port
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"http://{self.chrome_host}:{self.chrome_port}"

    def _request(self, path: str, method: str = "GET") -> Any:
        url = f"{self.endpoint}{path}"
        request = urllib.request.Request(url, method=method)

        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                body = response.read()
        except urllib.error.URLError as e:
            raise CDPError(
                f"Failed to connect to Chrome at {url}: {e}",
                details={
                    "chrome_host": self.chrome_host,
                    "chrome_port": self.chrome_port,
                    "recovery": "Ensure Chrome is running with --remote-debugging-port",
                },
            ) from e

        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise CDPError(
                f"Invalid JSON response from Chrome endpoint: {e}",
                details={"endpoint": url},
            ) from e

    def version(self) -> Dict[str, Any]:
        """Browser version metadata; also serves as a readiness probe."""
        return self._request("/json/version")

    def list_targets(
        self,
        target_type: Optional[str] = None,
        url_pattern: Optional[str] = None,
    ) -> List[Target]:
        """
        Fetch targets with optional filtering.

        Args:
            target_type: Keep only targets of this type
            url_pattern: Keep only targets whose URL contains this (case-insensitive)

        Returns:
            Matching targets in endpoint order

        Raises:
            CDPError: If the endpoint is unreachable or returns invalid data
        """
        targets = [Target(data) for data in self._request("/json/list")]

        if target_type:
            targets = [t for t in targets if t.type == target_type]

        if url_pattern:
            url_pattern_lower = url_pattern.lower()
            targets = [t for t in targets if url_pattern_lower in t.url.lower()]

        return targets

    def get_target_by_id(self, target_id: str) -> Optional[Target]:
        for target in self.list_targets():
            if target.id == target_id:
                return target
        return None

    def new_page(self, url: str = "about:blank") -> Target:
        """Open a new tab at ``url``."""
        query = urllib.parse.quote(url, safe=":/?&=#%@+,;")
        target = Target(self._request(f"/json/new?{query}", method="PUT"))
        logger.info(f"Opened page {target.id}")
        return target

    def close_target(self, target_id: str) -> None:
        """Close a target; an already-closed target is not an error."""
        url = f"{self.endpoint}/json/close/{target_id}"
        try:
            with urllib.request.urlopen(url, timeout=self.timeout):
                pass
        except urllib.error.URLError as e:
            logger.warning(f"Failed to close target {target_id}: {e}")

    def find_inspector_target(self, marker: str = "devtools", index: int = 0) -> Target:
        """
        Pick the inspector frontend among targets whose URL contains ``marker``.

        Args:
            marker: Substring identifying inspector frontend URLs
            index: Which of the matching targets to use

        Raises:
            CDPTargetNotFoundError: If fewer than index + 1 targets match
        """
        candidates = self.list_targets(url_pattern=marker)
        if len(candidates) <= index:
            raise CDPTargetNotFoundError(
                "No inspector found",
                url_pattern=marker,
                details={
                    "matches": len(candidates),
                    "index": index,
                    "recovery": "Launch Chrome with --auto-open-devtools-for-tabs",
                },
            )
        return candidates[index]

    def wait_for_inspector_target(
        self,
        marker: str = "devtools",
        index: int = 0,
        timeout: float = 10.0,
        poll_interval: float = 0.25,
    ) -> Target:
        """
        Poll find_inspector_target until it succeeds or ``timeout`` elapses.

        Raises:
            CDPTargetNotFoundError: If the inspector never shows up
        """
        deadline = time.monotonic() + timeout
        while True:
            try:
                return self.find_inspector_target(marker, index)
            except CDPTargetNotFoundError:
                if time.monotonic() >= deadline:
                    raise
            time.sleep(poll_interval)

    async def connect_to_target(
        self,
        target: Target,
        timeout: Optional[float] = 30.0,
        max_size: int = 67_108_864,
    ) -> CDPConnection:
        """
        Create a CDPConnection for ``target`` (not yet connected).

        Raises:
            CDPError: If the target exposes no WebSocket URL
        """
        if not target.webSocketDebuggerUrl:
            raise CDPError(
                f"Target {target.id} has no WebSocket debugger URL",
                details={"target": target.to_dict()},
            )

        return CDPConnection(target.webSocketDebuggerUrl, timeout=timeout, max_size=max_size)
