import pytest

from rescache import AsyncBaseStorage, GenerationManager, GenerationNotFound, Request, Response, generation_name
from rescache._utils import make_async_iterator


def test_generation_name():
    assert generation_name("smart-home", 3) == "smart-home-v3"
    assert generation_name("smart-home", "2024.1") == "smart-home-v2024.1"


@pytest.mark.anyio
async def test_create_generation_is_idempotent(storage: AsyncBaseStorage):
    manager = GenerationManager(storage)

    first = await manager.create_generation("smart-home-v3")
    second = await manager.create_generation("smart-home-v3")

    assert first is second
    assert await manager.list_generations() == {"smart-home-v3"}


@pytest.mark.anyio
async def test_generation_get_and_put(storage: AsyncBaseStorage):
    manager = GenerationManager(storage)
    generation = await manager.create_generation("smart-home-v3")
    request = Request(method="GET", url="/api/data")

    assert await generation.get(request) is None

    await generation.put(request, Response(status_code=200, stream=make_async_iterator([b"[1, 2, 3]"])))
    response = await generation.get(Request(method="GET", url="/api/data#fragment"))

    assert response is not None
    assert await response.aread() == b"[1, 2, 3]"
    assert response.metadata["rescache_from_cache"] is True
    assert response.metadata["rescache_generation"] == "smart-home-v3"
    assert await generation.keys() == {request.signature}


@pytest.mark.anyio
async def test_delete_generation(storage: AsyncBaseStorage):
    manager = GenerationManager(storage)
    await manager.create_generation("smart-home-v1")

    assert await manager.delete_generation("smart-home-v1") is True
    assert await manager.delete_generation("smart-home-v1") is False
    assert await manager.list_generations() == set()


@pytest.mark.anyio
async def test_delete_missing_generation_can_raise(storage: AsyncBaseStorage):
    manager = GenerationManager(storage)

    with pytest.raises(GenerationNotFound, match="smart-home-v1"):
        await manager.delete_generation("smart-home-v1", raise_if_missing=True)


@pytest.mark.anyio
async def test_sweep_keeps_only_current(storage: AsyncBaseStorage):
    manager = GenerationManager(storage)
    for version in (1, 2, 3):
        await manager.create_generation(generation_name("smart-home", version))
    await manager.create_generation("other-app-v1")

    deleted = await manager.sweep(keep="smart-home-v3")

    assert deleted == ["other-app-v1", "smart-home-v1", "smart-home-v2"]
    assert await manager.list_generations() == {"smart-home-v3"}


@pytest.mark.anyio
async def test_clear(storage: AsyncBaseStorage):
    manager = GenerationManager(storage)
    await manager.create_generation("smart-home-v2")
    await manager.create_generation("smart-home-v3")

    assert await manager.clear() == ["smart-home-v2", "smart-home-v3"]
    assert await manager.list_generations() == set()


@pytest.mark.anyio
async def test_recreated_generation_is_a_new_object(storage: AsyncBaseStorage):
    manager = GenerationManager(storage)
    first = await manager.create_generation("smart-home-v3")
    await manager.delete_generation("smart-home-v3")

    second = await manager.create_generation("smart-home-v3")

    assert first is not second
    assert await manager.list_generations() == {"smart-home-v3"}
