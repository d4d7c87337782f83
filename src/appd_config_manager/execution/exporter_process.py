"""
Launching and stopping the Config Exporter.

When the user passes ``--run "<command>"`` the tool starts the exporter
itself, waits until its API answers, and stops it again during cleanup.
"""

import logging
import os
import signal
import subprocess
import time
from typing import Optional

from ..shared.exceptions import HttpError, WorkflowError
from .exporter import ConfigExporterClient

INITIAL_POLL_INTERVAL = 1.0
MAX_POLL_INTERVAL = 10.0
STOP_TIMEOUT = 10


class ExporterProcess:
    """A Config Exporter process started by this run."""

    def __init__(self, command: str, exporter: ConfigExporterClient, timeout: float,
                 logger: Optional[logging.Logger] = None):
        self.command = command
        self.exporter = exporter
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self.process: Optional[subprocess.Popen] = None

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    def start(self) -> None:
        """Launch the exporter command detached, discarding its output.

        Raises:
            WorkflowError: If the command cannot be launched
        """
        self.logger.info(f"Starting Config Exporter with command: {self.command}")
        try:
            self.process = subprocess.Popen(
                self.command,
                shell=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise WorkflowError(f"Config Exporter command failed: {e}")

    def wait_until_ready(self) -> None:
        """Poll the exporter's controller listing until it answers.

        The poll interval starts at one second and doubles up to ten seconds.

        Raises:
            WorkflowError: If the process exits or the exporter is not ready in time
        """
        self.logger.info("Waiting for Config Exporter to load...")
        deadline = time.monotonic() + self.timeout
        interval = INITIAL_POLL_INTERVAL
        while True:
            # Stop waiting as soon as the process has exited
            if self.process is not None and self.process.poll() is not None:
                raise WorkflowError(f"Config Exporter exited with status {self.process.returncode}")
            try:
                self.exporter.list_controllers()
            except HttpError as e:
                self.logger.debug(f"Config Exporter not ready yet: {e}")
            else:
                self.logger.info(f"Config Exporter started (pid = {self.pid}).")
                return

            # Never sleep past the deadline
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise WorkflowError(f"Config Exporter did not become ready within {self.timeout:g}s")
            time.sleep(min(interval, remaining))
            interval = min(interval * 2, MAX_POLL_INTERVAL)

    def stop(self) -> None:
        """Terminate the exporter if this run started it and it is still running."""
        if self.process is None or self.process.poll() is not None:
            return
        self.logger.info(f"Stopping Config Exporter (pid = {self.pid}).")
        try:
            # The shell and its children share a session started in start()
            if hasattr(os, 'killpg'):
                os.killpg(self.process.pid, signal.SIGTERM)
            else:
                self.process.terminate()
            self.process.wait(timeout=STOP_TIMEOUT)
        except subprocess.TimeoutExpired:
            self.logger.warning(f"Config Exporter did not stop, killing it (pid = {self.pid}).")
            self.process.kill()
            self.process.wait()
        except ProcessLookupError:
            pass
