import pytest
from pydantic import ValidationError as PydanticValidationError

from company_service.core.errors import MalformedPayloadError, NotFoundError, ValidationError
from company_service.core.result import ErrorKind
from company_service.ingestion.service import ingest_theses
from company_service.modules.graph.service import list_theses
from company_service.modules.thesis import crud
from company_service.modules.thesis.schemas import ThesisStatusUpdate, validate_thesis_status
from company_service.modules.thesis.service import delete_theses, update_thesis_status
from company_service.modules.user.crud import get_user_by_clerk_id


def test_deprecated_statuses_are_rejected_with_replacement() -> None:
    with pytest.raises(ValueError) as exc:
        validate_thesis_status("pending")
    assert "validated" in str(exc.value)
    with pytest.raises(PydanticValidationError):
        ThesisStatusUpdate(status="generating")
    assert validate_thesis_status(" Denied ") == "denied"


@pytest.mark.asyncio
async def test_bare_array_inserts_with_server_status(session, make_org) -> None:
    org_id = await make_org(identifier="org_th", url="https://th.io")
    result = await ingest_theses(
        session,
        "org_th",
        [
            {"contrarian_level": 1, "thesis_html": "<p>A</p>", "status": "denied"},
            {"contrarian_level": 1, "thesis_html": "<p>B</p>"},
            {"contrarian_level": 11, "thesis_html": "<p>Too far</p>"},
        ],
    )
    assert result.inserted_count == 2
    assert [s.index for s in result.skipped] == [2]

    thesis = await crud.get_thesis(session, org_id, result.rows[0].id)
    assert thesis.status == "validated"
    assert thesis.status_changed_by_type == "ai"


@pytest.mark.asyncio
async def test_duplicate_text_updates_only_evidence(session, make_org) -> None:
    org_id = await make_org(identifier="org_dup", url="https://dup.io")
    first = await ingest_theses(
        session,
        "org_dup",
        {"theses": [{"contrarian_level": 4, "thesis_html": "<p>X</p>", "thesis_supporting_evidence_html": "<p>old</p>"}]},
    )
    thesis_id = first.rows[0].id
    await update_thesis_status(session, "org_dup", thesis_id, "denied", reason="Weak")

    second = await ingest_theses(
        session,
        "org_dup",
        {"theses": [{"level": 4, "thesis": "<p>X</p>", "evidence": "<p>new</p>"}]},
    )
    assert second.rows[0].id == thesis_id
    assert second.updated_count == 1

    thesis = await crud.get_thesis(session, org_id, thesis_id)
    assert thesis.thesis_supporting_evidence_html == "<p>new</p>"
    # Статус на конфликте не трогается
    assert thesis.status == "denied"


@pytest.mark.asyncio
async def test_evaluations_next_to_new_theses(session, make_org) -> None:
    await make_org(identifier="org_eval", url="https://eval.io")
    seeded = await ingest_theses(
        session,
        "org_eval",
        [
            {"contrarian_level": 2, "thesis_html": "<p>keep</p>"},
            {"contrarian_level": 2, "thesis_html": "<p>edit</p>"},
            {"contrarian_level": 3, "thesis_html": "<p>drop</p>"},
        ],
    )
    keep_id, edit_id, drop_id = (r.id for r in seeded.rows)

    result = await ingest_theses(
        session,
        "org_eval",
        {
            "db_ready_output": {
                "new_theses": [{"contrarian_level": 5, "thesis_html": "<p>fresh</p>"}],
                "thesis_evaluations": [
                    {"id": keep_id, "action": "keep"},
                    {"id": edit_id, "action": "update", "thesis_html": "<p>edited</p>"},
                    {"id": drop_id, "action": "deny", "reason": "Contradicted"},
                    {"id": 999999, "action": "deny"},
                    {"id": keep_id, "action": "explode"},
                ],
            }
        },
    )
    assert result.inserted_count == 1
    assert result.evaluations == {"keep": 1, "update": 1, "deny": 1}
    assert len(result.skipped) == 2

    listed = await list_theses(session, "org_eval", validated_only=True)
    texts = sorted(t["thesis_html"] for t in listed.value["theses"])
    assert texts == ["<p>edited</p>", "<p>fresh</p>", "<p>keep</p>"]

    everything = await list_theses(session, "org_eval")
    denied = [t for t in everything.value["theses"] if t["thesis_status"] == "denied"]
    assert denied[0]["thesis_status_reason"] == "Contradicted"
    assert everything.value["count"] == 4


@pytest.mark.asyncio
async def test_undeny_restores_validated(session, make_org) -> None:
    org_id = await make_org(identifier="org_undeny", url="https://undeny.io")
    seeded = await ingest_theses(session, "org_undeny", [{"contrarian_level": 1, "thesis_html": "<p>U</p>"}])
    thesis_id = seeded.rows[0].id
    await ingest_theses(session, "org_undeny", {"thesis_evaluations": [{"id": thesis_id, "action": "deny"}]})
    await ingest_theses(session, "org_undeny", {"thesis_evaluations": [{"id": thesis_id, "action": "undeny"}]})

    thesis = await crud.get_thesis(session, org_id, thesis_id)
    assert thesis.status == "validated"
    assert thesis.status_changed_by_type == "ai"


@pytest.mark.asyncio
async def test_user_status_change_stamps_user(session, make_org) -> None:
    org_id = await make_org(identifier="org_user", url="https://user.io")
    other_id = await make_org(identifier="org_other", url="https://other-user.io")
    seeded = await ingest_theses(session, "org_user", [{"contrarian_level": 6, "thesis_html": "<p>T</p>"}])
    thesis_id = seeded.rows[0].id

    ok = await update_thesis_status(
        session, "org_user", thesis_id, "denied", reason="Not our market", clerk_user_id="user_abc"
    )
    assert ok.success
    user = await get_user_by_clerk_id(session, "user_abc")
    thesis = await crud.get_thesis(session, org_id, thesis_id)
    assert thesis.status_changed_by_type == "user"
    assert thesis.status_changed_by_user_id == user.id
    assert thesis.status_reason == "Not our market"

    foreign = await update_thesis_status(session, other_id, thesis_id, "validated")
    assert foreign.kind is ErrorKind.THESIS_NOT_FOUND

    with pytest.raises(ValidationError):
        await update_thesis_status(session, "org_user", thesis_id, "pending")


@pytest.mark.asyncio
async def test_thesis_batch_shape_errors(session, make_org) -> None:
    await make_org(identifier="org_shape", url="https://shape-th.io")
    with pytest.raises(MalformedPayloadError):
        await ingest_theses(session, "org_shape", {"ideas": []})
    with pytest.raises(MalformedPayloadError):
        await ingest_theses(session, "org_shape", {"theses": [], "thesis_evaluations": {"id": 1}})
    with pytest.raises(NotFoundError):
        await ingest_theses(session, "org_missing", [])


@pytest.mark.asyncio
async def test_delete_theses(session, make_org) -> None:
    await make_org(identifier="org_del", url="https://del.io")
    await ingest_theses(session, "org_del", [{"contrarian_level": 1, "thesis_html": "<p>D</p>"}])
    result = await delete_theses(session, "org_del")
    assert result.value["deleted"] == 1
    listed = await list_theses(session, "org_del")
    assert listed.value["count"] == 0


@pytest.mark.asyncio
async def test_evaluation_reason_field_names(session, make_org) -> None:
    await make_org(identifier="org_reason", url="https://reason.io")
    seeded = await ingest_theses(session, "org_reason", [{"contrarian_level": 3, "thesis_html": "<p>R</p>"}])
    thesis_id = seeded.rows[0].id

    await ingest_theses(
        session,
        "org_reason",
        {"thesis_evaluations": [{"id": thesis_id, "action": "deny", "denial_reason": "Market too small"}]},
    )
    listed = await list_theses(session, "org_reason")
    assert listed.value["theses"][0]["thesis_status"] == "denied"
    assert listed.value["theses"][0]["thesis_status_reason"] == "Market too small"

    await ingest_theses(
        session,
        "org_reason",
        {"thesis_evaluations": [{"id": thesis_id, "action": "undeny", "undeny_reason": "New funding round"}]},
    )
    listed = await list_theses(session, "org_reason")
    assert listed.value["theses"][0]["thesis_status"] == "validated"
    assert listed.value["theses"][0]["thesis_status_reason"] == "New funding round"


@pytest.mark.asyncio
async def test_update_evaluation_applies_before_new_theses(session, make_org) -> None:
    await make_org(identifier="org_order", url="https://order.io")
    seeded = await ingest_theses(session, "org_order", [{"contrarian_level": 2, "thesis_html": "<p>A</p>"}])
    thesis_id = seeded.rows[0].id

    result = await ingest_theses(
        session,
        "org_order",
        {
            "new_theses": [{"contrarian_level": 2, "thesis_html": "<p>X</p>"}],
            "thesis_evaluations": [{"id": thesis_id, "action": "update", "updated_thesis_html": "<p>X</p>"}],
        },
    )
    assert result.evaluations == {"update": 1}
    assert result.skipped == []
    assert result.inserted_count == 0
    assert result.rows[0].id == thesis_id
    assert result.rows[0].was_new is False

    listed = await list_theses(session, "org_order")
    assert listed.value["count"] == 1
    assert listed.value["theses"][0]["thesis_html"] == "<p>X</p>"


@pytest.mark.asyncio
async def test_evaluation_without_action_is_keep(session, make_org) -> None:
    await make_org(identifier="org_keep", url="https://keep.io")
    seeded = await ingest_theses(session, "org_keep", [{"contrarian_level": 7, "thesis_html": "<p>K</p>"}])
    thesis_id = seeded.rows[0].id

    result = await ingest_theses(session, "org_keep", {"thesis_evaluations": [{"id": thesis_id}]})
    assert result.evaluations == {"keep": 1}
    assert result.skipped == []
    assert result.rows == []
