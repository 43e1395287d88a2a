"""
End-to-end audit run: open the browser, start the panel's operation from
its inspector, capture the report it produces and write it out.

Every fatal error aborts the run before the output file is touched.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from .browser import BrowserProcess
from .config import Configuration
from .connection import CDPConnection
from .exceptions import CDPError
from .logging_setup import log_with_context
from .report import extract_captured_value, write_report
from .runtime import RemoteRuntime
from .session import CDPSession, Target
from .sniffer import Sniffer, SnifferSpec
from .trigger import build_start_expression, trigger_until_ready

logger = logging.getLogger(__name__)


async def navigate(connection: CDPConnection, url: str) -> None:
    """
    Navigate the inspected page, swallowing failures.

    Navigation may only complete once the triggered operation reloads the
    page itself, so its outcome must never abort the run.
    """
    try:
        await connection.execute_command("Page.navigate", {"url": url}, timeout=None)
        logger.debug(f"Navigation to {url} committed")
    except CDPError as e:
        logger.warning(f"Navigation to {url} failed: {e}")


async def capture_report(
    runtime: RemoteRuntime,
    config: Configuration,
) -> Any:
    """
    Trigger the panel's operation and return the report it produces.

    With ``config.arm_first`` the sniffer is installed before the first
    trigger attempt; otherwise it is installed once the trigger has
    succeeded, relying on the operation taking longer than one round trip.

    Raises:
        SnifferInstallError: Receiver or method does not match the remote UI
        TriggerTimeoutError: A configured trigger bound was exhausted
        EmptyResultError: The capture settled without a usable value
    """
    spec = SnifferSpec(config.receiver_path, config.method_name, config.capture_index)
    sniffer = Sniffer(runtime, spec)
    start_expression = build_start_expression(
        config.view_id, config.panel_path, config.control_selector
    )

    if config.arm_first:
        await sniffer.arm()

    result = await trigger_until_ready(
        runtime,
        start_expression,
        max_attempts=config.max_attempts,
        deadline=config.trigger_deadline,
    )

    if config.arm_first:
        response = await sniffer.collect()
    else:
        response = await sniffer.capture()

    report = extract_captured_value(response)
    log_with_context(
        logger, logging.INFO, "Report captured",
        attempts=result.attempts, method=config.method_name,
    )
    return report


class AuditRunner:
    """
    Runs one audit against ``url`` and writes the captured report.

    Usage:
        runner = AuditRunner(config)
        path = asyncio.run(runner.run("https://example.com"))

    Attributes:
        config: Effective configuration
        browser_factory: Callable building a BrowserProcess from the config
    """

    def __init__(
        self,
        config: Configuration,
        browser_factory: Optional[Callable[[Configuration], BrowserProcess]] = None,
    ):
        self.config = config
        self.browser_factory = browser_factory or self._default_browser

    @staticmethod
    def _default_browser(config: Configuration) -> BrowserProcess:
        # Always headful: headless Chrome never opens the inspector frontend.
        return BrowserProcess(
            chrome_path=config.chrome_path,
            port=config.chrome_port,
        )

    async def run(self, url: str) -> Path:
        """
        Execute the full flow and return the path of the written report.

        Raises:
            CDPError: Any fatal stage failure; nothing is written in that case
        """
        config = self.config
        browser: Optional[BrowserProcess] = None
        page: Optional[Target] = None

        # Discovery and process management block, so they run off the event loop.
        if config.launch:
            browser = self.browser_factory(config)
            session = await asyncio.to_thread(browser.open)
        else:
            session = CDPSession(config.chrome_host, config.chrome_port)

        try:
            page = await asyncio.to_thread(session.new_page, "about:blank")
            inspector = await asyncio.to_thread(
                session.wait_for_inspector_target,
                config.inspector_marker,
                config.inspector_index,
                config.target_wait,
            )
            logger.info(f"Inspector target found: {inspector.url}")

            report = await self._run_in_inspector(session, page, inspector, url)
            return write_report(report, config.output_path)

        finally:
            if browser is not None:
                await asyncio.to_thread(browser.close)
            elif page is not None:
                await asyncio.to_thread(session.close_target, page.id)

    async def _run_in_inspector(
        self,
        session: CDPSession,
        page: Target,
        inspector: Target,
        url: str,
    ) -> Any:
        config = self.config
        page_conn = await session.connect_to_target(page, timeout=config.timeout)
        inspector_conn = await session.connect_to_target(
            inspector, timeout=config.timeout, max_size=config.max_size
        )

        async with page_conn, inspector_conn:
            runtime = RemoteRuntime(inspector_conn)
            await runtime.enable()

            navigation = asyncio.create_task(navigate(page_conn, url))
            # Let the navigation command go out before the first trigger attempt.
            await asyncio.sleep(0)
            try:
                return await capture_report(runtime, config)
            finally:
                if not navigation.done():
                    navigation.cancel()
                    try:
                        await navigation
                    except asyncio.CancelledError:
                        pass
