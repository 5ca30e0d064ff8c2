from rescache._core import (
    Activating as Activating,
    AnyLifecycleState as AnyLifecycleState,
    AsyncBaseStorage as AsyncBaseStorage,
    AsyncInMemoryStorage as AsyncInMemoryStorage,
    AsyncSqliteStorage as AsyncSqliteStorage,
    Entry as Entry,
    EntryMeta as EntryMeta,
    Headers as Headers,
    Installed as Installed,
    Installing as Installing,
    LifecycleState as LifecycleState,
    Request as Request,
    RequestMetadata as RequestMetadata,
    Response as Response,
    ResponseMetadata as ResponseMetadata,
    Serving as Serving,
    Uninstalled as Uninstalled,
)
from rescache._exceptions import (
    GenerationNotFound as GenerationNotFound,
    InvalidTransition as InvalidTransition,
    ResourceCacheError as ResourceCacheError,
    SeedIncomplete as SeedIncomplete,
    StorageUnavailable as StorageUnavailable,
    Unreachable as Unreachable,
)
from rescache._generations import (
    Generation as Generation,
    GenerationManager as GenerationManager,
    generation_name as generation_name,
)
from rescache._policies import (
    STATIC_ASSET_SUFFIXES as STATIC_ASSET_SUFFIXES,
    AnyPolicy as AnyPolicy,
    CacheFirst as CacheFirst,
    CachePolicy as CachePolicy,
    NetworkFirst as NetworkFirst,
    PolicyRouter as PolicyRouter,
)
from rescache._seeder import InstallationSeeder as InstallationSeeder, SeedResult as SeedResult
from rescache._async_cache import (
    DEFAULT_CORE_ASSETS as DEFAULT_CORE_ASSETS,
    ActivationResult as ActivationResult,
    AsyncCacheProxy as AsyncCacheProxy,
    ProxyOptions as ProxyOptions,
)

__all__ = (
    # Proxy
    "AsyncCacheProxy",
    "ProxyOptions",
    "ActivationResult",
    "DEFAULT_CORE_ASSETS",
    # Lifecycle
    "LifecycleState",
    "AnyLifecycleState",
    "Uninstalled",
    "Installing",
    "Installed",
    "Activating",
    "Serving",
    # Generations
    "Generation",
    "GenerationManager",
    "generation_name",
    # Seeding
    "InstallationSeeder",
    "SeedResult",
    # Policies
    "CachePolicy",
    "AnyPolicy",
    "NetworkFirst",
    "CacheFirst",
    "PolicyRouter",
    "STATIC_ASSET_SUFFIXES",
    # Models
    "Request",
    "Response",
    "Entry",
    "EntryMeta",
    "RequestMetadata",
    "ResponseMetadata",
    "Headers",
    # Storages
    "AsyncBaseStorage",
    "AsyncInMemoryStorage",
    "AsyncSqliteStorage",
    # Errors
    "ResourceCacheError",
    "StorageUnavailable",
    "SeedIncomplete",
    "Unreachable",
    "GenerationNotFound",
    "InvalidTransition",
)
