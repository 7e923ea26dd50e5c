"""
This module contains the functionality for running speedify_cli and decoding what it prints.
"""
import asyncio
import logging
import shutil
from typing import List

from .parser import Adapter, SpeedifyState, parse_adapters

logger = logging.getLogger(__name__)

DEFAULT_SPEEDIFY_CLI = "/usr/share/speedify/speedify_cli"


class SpeedifyExporterError(Exception):
    """Base class for errors raised by speedifyexporter"""


class SpeedifyUnavailable(SpeedifyExporterError):
    """Raised at startup when the speedify_cli executable cannot be found"""

    def __init__(self, path: str):
        super().__init__(f"Failed to find speedify_cli at {path}")
        self.path = path


class SpeedifyCLI:
    """Class for probing the Speedify client through its command line tool"""

    def __init__(self, cli_path: str = DEFAULT_SPEEDIFY_CLI, timeout: float = None):
        self.cli_path = cli_path
        self.timeout = timeout  # seconds to wait for each invocation, None waits forever

    def check_available(self) -> str:
        """
        Check that the configured executable exists.

        :return: resolved path of the executable
        :raises SpeedifyUnavailable: if it is missing or not executable
        """
        resolved = shutil.which(self.cli_path)
        if resolved is None:
            raise SpeedifyUnavailable(self.cli_path)
        logger.debug(f"Found speedify_cli at {resolved}")
        return resolved

    async def run(self, *args: str) -> bytes:
        """
        Run speedify_cli with the given arguments and return its stdout. Failures are logged
        and reported as empty output so that the scrape carries on with zero values.
        """
        command = " ".join((self.cli_path,) + args)
        try:
            proc = await asyncio.create_subprocess_exec(
                self.cli_path, *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE)
        except OSError as e:
            logger.error(f"Errored while running {command}: {e}")
            return b""

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Timed out after {self.timeout} seconds waiting for {command}")
            return b""
        finally:
            # timed out or cancelled along with the scrape
            if proc.returncode is None:
                proc.kill()
                await proc.wait()

        if proc.returncode != 0:
            message = (stderr or stdout).decode("utf-8", errors="replace").strip()
            logger.error(f"Errored while running {command}: exit status {proc.returncode}"
                         f"{': ' + message if message else ''}")
            return b""
        logger.debug(f"{command} returned {len(stdout)} bytes")
        return stdout

    async def state(self) -> SpeedifyState:
        """Get the connection state of the Speedify client"""
        state = SpeedifyState.from_json(await self.run("state"))
        logger.debug(f"Parsed speedify state: {state}")
        return state

    async def adapters(self) -> List[Adapter]:
        """Get the network adapters known to the Speedify client"""
        adapters = parse_adapters(await self.run("show", "adapters"))
        logger.debug(f"Parsed {len(adapters)} speedify adapters")
        return adapters
