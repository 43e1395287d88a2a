"""
Browser process lifecycle.

Launches Chrome with a remote debugging port and inspector windows opened
for every tab, waits for the HTTP endpoint, and tears the whole process tree
down again.
"""

import logging
import os
import shutil
import subprocess
import tempfile
import time
from typing import List, Optional

import psutil

from .exceptions import BrowserLaunchError, CDPError
from .session import CDPSession

logger = logging.getLogger(__name__)

CHROME_CANDIDATES = [
    "google-chrome",
    "google-chrome-stable",
    "chromium",
    "chromium-browser",
    "chrome",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
]


def find_chrome(explicit_path: Optional[str] = None) -> str:
    """
    Resolve the browser executable.

    Order: explicit path, CHROME_PATH environment variable, well-known names
    on PATH.

    Raises:
        BrowserLaunchError: If no executable can be found
    """
    for candidate in [explicit_path, os.getenv("CHROME_PATH")]:
        if candidate:
            if os.path.exists(candidate) or shutil.which(candidate):
                return candidate
            raise BrowserLaunchError(
                f"Chrome executable not found: {candidate}",
                details={"recovery": "Check --chrome-path or CHROME_PATH"},
            )

    for candidate in CHROME_CANDIDATES:
        if os.path.isabs(candidate):
            if os.path.exists(candidate):
                return candidate
            continue
        resolved = shutil.which(candidate)
        if resolved:
            return resolved

    raise BrowserLaunchError(
        "No Chrome executable found",
        details={"recovery": "Install Chrome/Chromium or set CHROME_PATH"},
    )


class BrowserProcess:
    """
    A Chrome instance owned by this process.

    Usage:
        with BrowserProcess(port=9222) as session:
            targets = session.list_targets()

    Attributes:
        chrome_path: Executable override (None = discover)
        port: Remote debugging port
        headless: Run without a window (inspector windows never open then)
        startup_timeout: Seconds to wait for the debugging endpoint
    """

    def __init__(
        self,
        chrome_path: Optional[str] = None,
        port: int = 9222,
        headless: bool = False,
        startup_timeout: float = 15.0,
        extra_args: Optional[List[str]] = None,
    ):
        self.chrome_path = chrome_path
        self.port = port
        self.headless = headless
        self.startup_timeout = startup_timeout
        self.extra_args = list(extra_args or [])

        self._process: Optional[subprocess.Popen] = None
        self._profile_dir: Optional[str] = None

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    def build_command(self, executable: str, profile_dir: str) -> List[str]:
        command = [
            executable,
            f"--remote-debugging-port={self.port}",
            f"--user-data-dir={profile_dir}",
            "--auto-open-devtools-for-tabs",
            "--no-first-run",
            "--no-default-browser-check",
        ]
        if self.headless:
            command.append("--headless=new")
        command.extend(self.extra_args)
        command.append("about:blank")
        return command

    def open(self) -> CDPSession:
        """
        Launch the browser and wait until its endpoint answers.

        Returns:
            CDPSession bound to the launched browser

        Raises:
            BrowserLaunchError: If the browser cannot be started or never becomes ready
        """
        executable = find_chrome(self.chrome_path)
        self._profile_dir = tempfile.mkdtemp(prefix="devtools-sniffer-")
        command = self.build_command(executable, self._profile_dir)

        logger.info(f"Launching {executable} on port {self.port}")
        try:
            self._process = subprocess.Popen(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            self.close()
            raise BrowserLaunchError(
                f"Failed to launch Chrome: {e}",
                details={"executable": executable},
            ) from e

        session = CDPSession(chrome_port=self.port)
        deadline = time.monotonic() + self.startup_timeout
        while True:
            if self._process.poll() is not None:
                code = self._process.returncode
                self.close()
                raise BrowserLaunchError(
                    f"Chrome exited during startup with code {code}",
                    details={"executable": executable},
                )
            try:
                version = session.version()
                logger.info(f"Chrome ready: {version.get('Browser', 'unknown')} (PID: {self.pid})")
                return session
            except CDPError:
                if time.monotonic() >= deadline:
                    self.close()
                    raise BrowserLaunchError(
                        f"Chrome debugging endpoint not ready after {self.startup_timeout}s",
                        details={"port": self.port},
                    )
            time.sleep(0.1)

    def close(self) -> None:
        """Terminate the browser process tree and remove the temporary profile."""
        if self._process is not None:
            try:
                parent = psutil.Process(self._process.pid)
                processes = parent.children(recursive=True) + [parent]
            except psutil.NoSuchProcess:
                processes = []

            for process in processes:
                try:
                    process.terminate()
                except psutil.NoSuchProcess:
                    pass

            _, alive = psutil.wait_procs(processes, timeout=5)
            for process in alive:
                try:
                    process.kill()
                except psutil.NoSuchProcess:
                    pass

            # Reap the Popen handle.
            try:
                self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                logger.warning(f"Chrome (PID: {self._process.pid}) did not exit")
            logger.info("Chrome closed")
            self._process = None

        if self._profile_dir:
            shutil.rmtree(self._profile_dir, ignore_errors=True)
            self._profile_dir = None

    def __enter__(self) -> CDPSession:
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
