import pytest

from company_service.core.errors import ValidationError
from company_service.core.result import ErrorKind
from company_service.modules.generation import crud
from company_service.modules.generation.service import (
    complete_client_info_generation,
    complete_thesis_generation,
    get_generation_status,
    start_client_info_generation,
    start_thesis_generation,
)


@pytest.mark.asyncio
async def test_client_info_start_is_exclusive(session, make_org) -> None:
    await make_org(identifier="org_gen", url="https://gen.io")

    first = await start_client_info_generation(session, "org_gen")
    assert first.success
    assert first.value["status"] == "generating"

    second = await start_client_info_generation(session, "org_gen")
    assert not second.success
    assert second.kind is ErrorKind.ALREADY_IN_PROGRESS
    assert second.to_payload()["status"] == "generating"


@pytest.mark.asyncio
async def test_complete_twice_is_idempotent(session, make_org) -> None:
    org_id = await make_org(identifier="org_done", url="https://done.io")
    await start_client_info_generation(session, "org_done")

    done = await complete_client_info_generation(session, "org_done")
    assert done.success
    assert await crud.get_organization_generation(session, org_id) == (None, None)

    again = await complete_client_info_generation(session, "org_done")
    assert again.kind is ErrorKind.NOTHING_IN_PROGRESS
    assert await crud.get_organization_generation(session, org_id) == (None, None)

    restarted = await start_client_info_generation(session, "org_done")
    assert restarted.success


@pytest.mark.asyncio
async def test_thesis_levels_tracked_independently(session, make_org) -> None:
    await make_org(identifier="org_lvl", url="https://lvl.io")

    assert (await start_thesis_generation(session, "org_lvl", 3)).success
    assert (await start_thesis_generation(session, "org_lvl", 7)).success
    busy = await start_thesis_generation(session, "org_lvl", 3)
    assert busy.kind is ErrorKind.ALREADY_IN_PROGRESS

    status = await get_generation_status(session, "org_lvl")
    assert status.value.in_progress is True
    assert status.value.organization.status is None
    assert [t.level for t in status.value.theses] == [3, 7]

    done = await complete_thesis_generation(session, "org_lvl")
    assert done.value["levels_completed"] == 2
    nothing = await complete_thesis_generation(session, "org_lvl")
    assert nothing.kind is ErrorKind.NOTHING_IN_PROGRESS

    # После завершения уровень снова можно запускать
    assert (await start_thesis_generation(session, "org_lvl", 3)).success


@pytest.mark.asyncio
async def test_generation_status_idle_and_payload(session, make_org) -> None:
    await make_org(identifier="org_idle", url="https://idle.io")
    idle = await get_generation_status(session, "org_idle")
    assert idle.success
    assert idle.value.in_progress is False

    await start_client_info_generation(session, "org_idle")
    busy = await get_generation_status(session, "org_idle")
    payload = busy.to_payload()
    assert payload["success"] is True
    assert payload["in_progress"] is True
    assert payload["organization"]["status"] == "generating"


@pytest.mark.asyncio
async def test_generation_unknown_org_and_bad_level(session) -> None:
    missing = await start_client_info_generation(session, "org_void")
    assert missing.kind is ErrorKind.ORGANIZATION_NOT_FOUND
    assert (await get_generation_status(session, "org_void")).kind is ErrorKind.ORGANIZATION_NOT_FOUND

    with pytest.raises(ValidationError):
        await start_thesis_generation(session, "org_void", 0)
