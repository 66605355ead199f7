"""FastAPI dependencies for the services created at startup."""

from dataclasses import dataclass
from typing import Optional

from .services.blockfrost import BlockfrostClient
from .services.block_poller import LiveBlockPoller
from .services.cache_store import CacheStore
from .services.config import Settings


@dataclass
class AppServices:
    """Long-lived services shared by all requests."""
    settings: Settings
    cache_store: CacheStore
    client: BlockfrostClient
    poller: LiveBlockPoller


_services: Optional[AppServices] = None


def init_services(services: AppServices) -> None:
    global _services
    _services = services


def reset_services() -> None:
    global _services
    _services = None


def _require_services() -> AppServices:
    if _services is None:
        raise RuntimeError("Application services are not initialized")
    return _services


def get_cache_store() -> CacheStore:
    return _require_services().cache_store


def get_blockfrost_client() -> BlockfrostClient:
    return _require_services().client


def get_block_poller() -> LiveBlockPoller:
    return _require_services().poller
