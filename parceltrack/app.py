"""
ParcelTrack Application - wires stores, token caches, adapters, the cache
service and the refresh scheduler from one config dict.

Usage:
    from parceltrack import ParcelTrack

    app = ParcelTrack("config.yaml")
    await app.initialize()
    shipment = await app.service.get_shipment("1Z999AA10123456784")
    await app.shutdown()
"""

import logging
import random
from typing import Optional, Union

import httpx

from .cache import MemoryShipmentStore, PostgresShipmentStore, ShipmentCacheService, ShipmentStore
from .carriers import AdapterRegistry, LocalCourierAdapter, SimulatedTokenCache, UpsAdapter, UspsAdapter
from .config import load_config, with_defaults
from .db import Database, ensure_schema
from .jobs import RefreshScheduler, StaleRefreshJob
from .oauth import UpsTokenCache, UspsTokenCache
from .tokens import MemoryTokenStore, PostgresTokenStore, TokenStore

logger = logging.getLogger(__name__)


class ParcelTrack:
    """
    ParcelTrack application entry point.

    Sync constructor reads config; ``initialize()`` opens the database (if
    configured) and builds the services. Without a ``database`` entry the
    in-memory stores are used.

    Args:
        config: Path to a YAML config file, a config dict, or None to read
            the environment.
        transport: Optional httpx transport shared by all carrier and token
            HTTP calls (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        config: Union[str, dict, None] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if isinstance(config, dict):
            self._config = with_defaults(config)
        else:
            self._config = load_config(config)
        self._transport = transport
        self._initialized = False

        # Will be set during initialize()
        self._database = None
        self._shipment_store: Optional[ShipmentStore] = None
        self._token_store: Optional[TokenStore] = None
        self._registry: Optional[AdapterRegistry] = None
        self._service: Optional[ShipmentCacheService] = None
        self._job: Optional[StaleRefreshJob] = None
        self._scheduler: Optional[RefreshScheduler] = None

    @property
    def config(self) -> dict:
        """Return a copy of the resolved configuration dict."""
        return dict(self._config)

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def service(self) -> ShipmentCacheService:
        self._require_initialized()
        return self._service

    @property
    def registry(self) -> AdapterRegistry:
        self._require_initialized()
        return self._registry

    @property
    def scheduler(self) -> RefreshScheduler:
        self._require_initialized()
        return self._scheduler

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("ParcelTrack not initialized. Call await app.initialize() first.")

    async def initialize(self) -> None:
        """Build all services. Safe to call more than once."""
        if self._initialized:
            return

        try:
            await self._build()
        except Exception:
            if self._database:
                await self._database.close()
                self._database = None
            raise

        self._initialized = True
        logger.info("ParcelTrack initialized")

    async def _build(self) -> None:
        cfg = self._config

        # 1. Storage
        if cfg.get("database"):
            self._database = Database(dsn=cfg["database"])
            await self._database.initialize()
            await ensure_schema(self._database)
            self._shipment_store = PostgresShipmentStore(self._database)
            self._token_store = PostgresTokenStore(self._database)
            logger.info("Using PostgreSQL storage")
        else:
            self._shipment_store = MemoryShipmentStore()
            self._token_store = MemoryTokenStore()
            logger.info("No database configured, using in-memory storage")

        # 2. Token caches and adapters
        ups_cfg, usps_cfg, local_cfg = cfg["ups"], cfg["usps"], cfg["local"]
        ups_tokens = UpsTokenCache(
            self._token_store,
            client_id=ups_cfg.get("client_id") or "",
            client_secret=ups_cfg.get("client_secret") or "",
            base_url=ups_cfg["base_url"],
            transport=self._transport,
        )
        usps_tokens = UspsTokenCache(
            self._token_store,
            client_id=usps_cfg.get("client_id") or "",
            client_secret=usps_cfg.get("client_secret") or "",
            base_url=usps_cfg["base_url"],
            transport=self._transport,
        )
        seed = local_cfg.get("seed")
        self._registry = AdapterRegistry([
            UpsAdapter(ups_tokens, ups_cfg["base_url"], transport=self._transport),
            UspsAdapter(usps_tokens, usps_cfg["base_url"], transport=self._transport),
            LocalCourierAdapter(
                SimulatedTokenCache(self._token_store),
                latency_seconds=float(local_cfg["latency_seconds"]),
                failure_rate=float(local_cfg["failure_rate"]),
                rng=random.Random(seed) if seed is not None else None,
            ),
        ])
        logger.info(f"Carriers: {', '.join(c.value for c in self._registry.carriers())}")

        # 3. Cache service, refresh job, scheduler
        self._service = ShipmentCacheService(self._shipment_store, self._registry)
        self._job = StaleRefreshJob(self._service)
        sched_cfg = cfg["scheduler"]
        self._scheduler = RefreshScheduler(
            self._job, interval_seconds=float(sched_cfg["interval_seconds"])
        )
        if sched_cfg.get("enabled"):
            await self._scheduler.start()

    async def shutdown(self) -> None:
        """Stop the scheduler and close the database."""
        if not self._initialized:
            return
        try:
            if self._scheduler:
                await self._scheduler.stop()
            if self._database:
                await self._database.close()
        except Exception as e:
            logger.warning(f"Error during shutdown: {e}")
        finally:
            self._initialized = False
            self._database = None
            self._shipment_store = None
            self._token_store = None
            self._registry = None
            self._service = None
            self._job = None
            self._scheduler = None
            logger.info("ParcelTrack shut down")
