# Business Logic Services

from .config import (
    ConfigService,
    config_service,
    configure_logging,
    ConfigValidationException,
    ConfigValidationError,
    Settings,
    BlockfrostSettings,
    IngestionSettings,
    CacheSettings,
    PollerSettings,
    LoggingSettings,
    ServerSettings,
)
from .blockfrost import (
    BlockfrostClient,
    NetworkError,
    RateLimited,
)
from .ingestion import (
    PoolIngestionService,
    IngestionResult,
    PartialEnrichmentFailure,
    DiscoveryLimitExceeded,
)
from .cache_store import (
    CacheStore,
    CacheUnavailable,
    CacheCorrupt,
)
from .block_poller import LiveBlockPoller
from .live_updates import LiveUpdateManager, BlockUpdate, live_update_manager
from .renderer import (
    RenderInstructions,
    build_render_instructions,
    build_tooltip,
)

__all__ = [
    # Config
    "ConfigService",
    "config_service",
    "configure_logging",
    "ConfigValidationException",
    "ConfigValidationError",
    "Settings",
    "BlockfrostSettings",
    "IngestionSettings",
    "CacheSettings",
    "PollerSettings",
    "LoggingSettings",
    "ServerSettings",
    # Upstream client
    "BlockfrostClient",
    "NetworkError",
    "RateLimited",
    # Ingestion
    "PoolIngestionService",
    "IngestionResult",
    "PartialEnrichmentFailure",
    "DiscoveryLimitExceeded",
    # Cache
    "CacheStore",
    "CacheUnavailable",
    "CacheCorrupt",
    # Live updates
    "LiveBlockPoller",
    "LiveUpdateManager",
    "BlockUpdate",
    "live_update_manager",
    # Rendering
    "RenderInstructions",
    "build_render_instructions",
    "build_tooltip",
]
