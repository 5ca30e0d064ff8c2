from rescache._core._headers import Headers as Headers
from rescache._core._lifecycle import (
    Activating as Activating,
    AnyLifecycleState as AnyLifecycleState,
    Installed as Installed,
    Installing as Installing,
    LifecycleState as LifecycleState,
    Serving as Serving,
    Uninstalled as Uninstalled,
)
from rescache._core._storages._async_base import AsyncBaseStorage as AsyncBaseStorage
from rescache._core._storages._async_memory import AsyncInMemoryStorage as AsyncInMemoryStorage
from rescache._core._storages._async_sqlite import AsyncSqliteStorage as AsyncSqliteStorage
from rescache._core.models import (
    Entry as Entry,
    EntryMeta as EntryMeta,
    Request as Request,
    RequestMetadata as RequestMetadata,
    Response as Response,
    ResponseMetadata as ResponseMetadata,
)

__all__ = (
    ## Lifecycle
    "LifecycleState",
    "AnyLifecycleState",
    "Uninstalled",
    "Installing",
    "Installed",
    "Activating",
    "Serving",
    ## Models
    "Request",
    "Response",
    "Entry",
    "EntryMeta",
    "RequestMetadata",
    "ResponseMetadata",
    ## Headers
    "Headers",
    ## Storages
    "AsyncBaseStorage",
    "AsyncInMemoryStorage",
    "AsyncSqliteStorage",
)
