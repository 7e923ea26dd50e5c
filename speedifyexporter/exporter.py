"""
This module provides the exporter functionality.

SpeedifyExporter is started from the main application loop and serves metrics until stopped.
Collection happens inside the /metrics request handler, there is no background polling.
"""

import logging
from typing import Sequence

from aiohttp import web
from aiohttp.hdrs import ACCEPT
from aioprometheus import Registry, render
from aioprometheus.service import Service

from .metrics import BuildInfoCollector, SpeedifyCollector
from .probe import SpeedifyCLI

logger = logging.getLogger(__name__)


class MetricsService(Service):
    """aioprometheus service that runs its collectors into a new registry on every scrape"""

    def __init__(self, collectors: Sequence) -> None:
        super().__init__(registry=Registry())
        self.collectors = tuple(collectors)

    async def collect(self) -> Registry:
        registry = Registry()
        for collector in self.collectors:
            await collector.collect(registry)
        return registry

    async def handle_metrics(self, request: web.Request) -> web.Response:
        registry = await self.collect()
        content, http_headers = render(registry, request.headers.getall(ACCEPT, []))
        return web.Response(body=content, headers=http_headers)


class SpeedifyExporter:
    def __init__(
            self,
            cli: SpeedifyCLI,
            host: str = "0.0.0.0",
            port: int = 9961) -> None:
        self.cli = cli
        self.host = host
        self.port = port
        self.collector = SpeedifyCollector(cli)
        self.server = MetricsService((self.collector, BuildInfoCollector()))

    async def start(self) -> None:
        """Start the prometheus service. Raises OSError if the address cannot be bound."""
        await self.server.start(addr=self.host, port=self.port)
        logger.info(f"Serving Speedify prometheus metrics on: {self.server.metrics_url}")

    async def stop(self) -> None:
        """Stop the prometheus service"""
        await self.server.stop()
        logger.info("Stopped serving Speedify prometheus metrics")
