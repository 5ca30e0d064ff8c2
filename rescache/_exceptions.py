import typing as tp

__all__ = (
    "ResourceCacheError",
    "StorageUnavailable",
    "SeedIncomplete",
    "Unreachable",
    "GenerationNotFound",
    "InvalidTransition",
)


class ResourceCacheError(Exception): ...


class StorageUnavailable(ResourceCacheError): ...


class Unreachable(ResourceCacheError):
    """
    The network could not deliver a response for the request.

    The original transport error, when there is one, is kept as `__cause__`.
    """

    def __init__(self, message: str, url: tp.Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class SeedIncomplete(ResourceCacheError):
    def __init__(self, generation: str, failed: tp.Sequence[str]) -> None:
        super().__init__(f"Could not seed generation {generation!r}, failed resources: {', '.join(failed)}")
        self.generation = generation
        self.failed = list(failed)


class GenerationNotFound(ResourceCacheError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Generation {name!r} does not exist")
        self.name = name


class InvalidTransition(ResourceCacheError): ...
