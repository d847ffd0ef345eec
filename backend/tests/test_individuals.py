import uuid
from datetime import datetime

import pytest
from sqlalchemy import func, select

from company_service.core.errors import NotFoundError, ValidationError
from company_service.core.result import ErrorKind
from company_service.ingestion.service import ingest_individuals
from company_service.modules.individual.model import Individual, OrganizationIndividual
from company_service.modules.individual.schemas import IndividualIn
from company_service.modules.individual.service import (
    update_membership_status,
    upsert_individual_with_organization,
)


async def _membership(session, organization_id, individual_id) -> OrganizationIndividual:
    result = await session.execute(
        select(OrganizationIndividual)
        .where(
            OrganizationIndividual.organization_id == organization_id,
            OrganizationIndividual.individual_id == individual_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _count(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_unknown_organization_fails_hard(session) -> None:
    with pytest.raises(NotFoundError):
        await upsert_individual_with_organization(
            session,
            "org_does_not_exist",
            IndividualIn(first_name="Ada", linkedin_url="https://linkedin.com/in/ada"),
        )
    assert await _count(session, Individual) == 0


@pytest.mark.asyncio
async def test_second_upsert_updates_single_edge(session, make_org) -> None:
    org_id = await make_org(identifier="org_team", url="https://team.io")
    first = await upsert_individual_with_organization(
        session,
        "org_team",
        IndividualIn(
            first_name="Ada",
            last_name="Lovelace",
            linkedin_url="https://linkedin.com/in/ada/",
            organization_role="CEO",
            joined_organization_at=datetime(2020, 1, 15),
            belonging_confidence_level="found_online",
        ),
    )
    assert first.was_new_individual is True
    assert first.organization_id == str(org_id)

    second = await upsert_individual_with_organization(
        session,
        str(org_id),
        IndividualIn(
            first_name="Ada",
            linkedin_url="https://linkedin.com/in/ada",
            organization_role="Chair",
        ),
    )
    assert second.individual_id == first.individual_id
    assert second.was_new_individual is False
    assert await _count(session, OrganizationIndividual) == 1

    edge = await _membership(session, org_id, uuid.UUID(first.individual_id))
    assert edge.organization_role == "Chair"
    # joined_at не передан -> прежнее значение сохраняется
    assert edge.joined_organization_at.replace(tzinfo=None) == datetime(2020, 1, 15)
    assert edge.belonging_confidence_level == "found_online"
    assert edge.status == "active"

    person = await session.get(Individual, uuid.UUID(first.individual_id), populate_existing=True)
    assert person.last_name == "Lovelace"


@pytest.mark.asyncio
async def test_reingestion_does_not_reset_membership_status(session, make_org) -> None:
    org_id = await make_org(identifier="org_status", url="https://status.io")
    person = IndividualIn(first_name="Bob", linkedin_url="https://linkedin.com/in/bob")
    out = await upsert_individual_with_organization(session, "org_status", person)

    result = await update_membership_status(session, "org_status", out.individual_id, "ended")
    assert result.success

    await upsert_individual_with_organization(session, "org_status", person)
    edge = await _membership(session, org_id, uuid.UUID(out.individual_id))
    assert edge.status == "ended"


@pytest.mark.asyncio
async def test_update_membership_status_results(session, make_org) -> None:
    await make_org(identifier="org_m", url="https://m.io")
    out = await upsert_individual_with_organization(
        session,
        "org_m",
        IndividualIn(first_name="Cy", linkedin_url="https://linkedin.com/in/cy"),
    )

    ok = await update_membership_status(session, "org_m", out.individual_id, "hidden")
    payload = ok.to_payload()
    assert payload["success"] is True
    assert payload["relationship_status"] == "hidden"
    assert payload["individual_id"] == out.individual_id
    assert payload["updated_at"]

    no_org = await update_membership_status(session, "org_nope", out.individual_id, "ended")
    assert not no_org.success
    assert no_org.kind is ErrorKind.ORGANIZATION_NOT_FOUND
    assert no_org.to_payload()["organization_id"] == "org_nope"

    no_edge = await update_membership_status(session, "org_m", uuid.uuid4(), "ended")
    assert no_edge.kind is ErrorKind.MEMBERSHIP_NOT_FOUND
    assert no_edge.to_payload()["success"] is False

    with pytest.raises(ValidationError):
        await update_membership_status(session, "org_m", out.individual_id, "fired")


@pytest.mark.asyncio
async def test_bulk_individuals_match_by_name_without_linkedin(session, make_org) -> None:
    org_id = await make_org(identifier="org_bulk", url="https://bulk.io")
    payload = {
        "individuals": [
            {"first_name": "Dana", "last_name": "Scully", "organization_role": "Agent"},
            {"first_name": "Fox", "linkedin_url": "https://linkedin.com/in/fox"},
            {"last_name": "No First Name"},
        ]
    }
    first = await ingest_individuals(session, "org_bulk", payload)
    assert len(first.rows) == 2
    assert [s.index for s in first.skipped] == [2]

    second = await ingest_individuals(
        session,
        org_id,
        {"db_ready_output": [{"first_name": "Dana", "last_name": "Scully", "personal_website_url": "https://ds.io"}]},
    )
    assert second.rows[0].was_new_individual is False
    assert second.rows[0].individual_id == first.rows[0].individual_id
    assert await _count(session, Individual) == 2


@pytest.mark.asyncio
async def test_bulk_individuals_unknown_org(session) -> None:
    with pytest.raises(NotFoundError):
        await ingest_individuals(session, "org_ghost", [{"first_name": "X"}])
