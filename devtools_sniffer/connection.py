"""CDP WebSocket connection management.

Provides CDPConnection, the transport under the command channel: one
WebSocket per target, id-correlated command replies, and a background receive
loop that fails pending commands when the socket goes away.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

try:
    import websockets
    from websockets.exceptions import ConnectionClosed
except ImportError:
    raise ImportError(
        "websockets library not found. Install with: pip3 install websockets"
    )

from .exceptions import (
    ConnectionFailedError,
    ConnectionClosedError,
    CommandFailedError,
    CDPTimeoutError,
)

logger = logging.getLogger(__name__)

# Sentinel for "use the connection default"; an explicit None waits forever.
DEFAULT_TIMEOUT: Any = object()


class CDPConnection:
    """Manages a WebSocket connection to one DevTools Protocol target.

    Usage:
        async with CDPConnection(ws_url) as conn:
            result = await conn.execute_command("Runtime.evaluate", {"expression": "1+1"})

    Attributes:
        ws_url: WebSocket debugger URL
        timeout: Default command timeout in seconds (None waits indefinitely)
        max_size: Maximum WebSocket message size in bytes (reports are large)
    """

    def __init__(
        self,
        ws_url: str,
        *,
        timeout: Optional[float] = 30.0,
        max_size: int = 67_108_864  # 64MB
    ):
        """Initialize CDP connection.

        Args:
            ws_url: WebSocket debugger URL (e.g., ws://localhost:9222/devtools/page/ABC123)
            timeout: Default command timeout in seconds, None for no limit
            max_size: Maximum WebSocket message size in bytes
        """
        if not ws_url.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URL: {ws_url}")

        self.ws_url = ws_url
        self.timeout = timeout
        self.max_size = max_size

        self._ws: Optional[Any] = None
        self._next_command_id: int = 1
        self._pending_commands: Dict[int, asyncio.Future] = {}
        self._receive_task: Optional[asyncio.Task] = None
        self._is_connected: bool = False

    @property
    def is_connected(self) -> bool:
        """Check if WebSocket connection is active."""
        if not self._is_connected or self._ws is None:
            return False
        try:
            return self._ws.state.name == "OPEN"
        except AttributeError:
            return not getattr(self._ws, "closed", True)

    async def connect(self) -> None:
        """Establish WebSocket connection and start receive loop.

        Raises:
            ConnectionFailedError: If WebSocket connection fails
        """
        try:
            logger.info(f"Connecting to {self.ws_url}")
            self._ws = await websockets.connect(
                self.ws_url,
                max_size=self.max_size
            )
            self._is_connected = True
            self._receive_task = asyncio.create_task(self._receive_loop())
            logger.info("CDP connection established")
        except Exception as e:
            raise ConnectionFailedError(
                f"Failed to connect to {self.ws_url}: {e}",
                details={"url": self.ws_url, "error": str(e)}
            )

    async def disconnect(self) -> None:
        """Close WebSocket connection and fail anything still pending."""
        logger.info("Disconnecting CDP connection")
        self._is_connected = False

        if self._receive_task and not self._receive_task.done():
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass

        if self._ws:
            try:
                if getattr(self._ws, "state", None) is None or self._ws.state.name != "CLOSED":
                    await self._ws.close()
            except Exception as e:
                logger.warning(f"Error closing WebSocket: {e}")

        self._fail_pending(ConnectionClosedError("Connection closed during command execution"))
        logger.info("CDP connection closed")

    async def __aenter__(self) -> "CDPConnection":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    async def execute_command(
        self,
        method: str,
        params: Optional[dict] = None,
        *,
        timeout: Optional[float] = DEFAULT_TIMEOUT
    ) -> dict:
        """Execute CDP command and wait for its reply.

        Args:
            method: CDP method name (e.g., "Runtime.evaluate")
            params: Method parameters (default: empty dict)
            timeout: Command timeout in seconds (default: self.timeout,
                None waits until the reply arrives)

        Returns:
            Contents of the reply's "result" field

        Raises:
            ConnectionClosedError: If connection is not active
            CDPTimeoutError: If command times out
            CommandFailedError: If the browser returns an error reply
        """
        if not self.is_connected:
            raise ConnectionClosedError("Cannot execute command: connection not active")

        cmd_id = self._next_command_id
        self._next_command_id += 1

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending_commands[cmd_id] = future

        message = json.dumps({
            "id": cmd_id,
            "method": method,
            "params": params or {}
        })

        cmd_timeout = self.timeout if timeout is DEFAULT_TIMEOUT else timeout
        try:
            await self._ws.send(message)
            logger.debug(f"Sent command {cmd_id}: {method}")
            return await asyncio.wait_for(future, timeout=cmd_timeout)
        except asyncio.TimeoutError:
            raise CDPTimeoutError(
                "Command timed out",
                command_method=method,
                timeout=cmd_timeout
            )
        finally:
            self._pending_commands.pop(cmd_id, None)

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending_commands.values():
            if not future.done():
                future.set_exception(error)
        self._pending_commands.clear()

    def _dispatch(self, data: dict) -> None:
        cmd_id = data.get("id")
        if cmd_id is None:
            # Events are not consumed here.
            logger.debug(f"Ignoring event: {data.get('method')}")
            return

        future = self._pending_commands.get(cmd_id)
        if future is None or future.done():
            return

        if "error" in data:
            error = data["error"]
            future.set_exception(
                CommandFailedError(
                    error.get("message", "Unknown CDP error"),
                    error_code=error.get("code"),
                    details={"error": error}
                )
            )
        else:
            future.set_result(data.get("result", {}))

    async def _receive_loop(self) -> None:
        """Background task routing replies to pending command futures."""
        try:
            async for message in self._ws:
                try:
                    self._dispatch(json.loads(message))
                except json.JSONDecodeError as e:
                    logger.error(f"Malformed CDP message: {e}")

            # Iteration ends quietly on a clean close.
            self._is_connected = False
            self._fail_pending(ConnectionClosedError("Connection closed by remote"))

        except ConnectionClosed as e:
            logger.warning(f"WebSocket connection closed: {e}")
            self._is_connected = False
            self._fail_pending(ConnectionClosedError(f"Connection closed: {e}"))
        except Exception as e:
            logger.error(f"Receive loop error: {e}", exc_info=True)
            self._is_connected = False
            self._fail_pending(ConnectionClosedError(f"Receive loop failed: {e}"))
