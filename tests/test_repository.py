import asyncio

import pytest
from pydantic import ValidationError

from case_records.schemas import ClinicalCaseCreate, ClinicalCaseUpdate, Outcome
from rag_pipeline.errors import NotFoundError, PermissionDeniedError

from conftest import case_payload, open_repository, seed_case


def test_case_numbers_are_sequential(database_url):
    async def scenario():
        async with open_repository(database_url) as repo:
            first = await seed_case(repo)
            second = await seed_case(repo)
            third = await seed_case(repo)
            await repo.delete(second.id, "doc-1")
            fourth = await seed_case(repo)
            numbers = [c.case_number for c in (first, second, third, fourth)]
            assert numbers == ["C-001", "C-002", "C-003", "C-004"]

    asyncio.run(scenario())


def test_create_round_trips_fields(database_url):
    async def scenario():
        async with open_repository(database_url) as repo:
            case = await seed_case(repo, doctor_id="doc-7")
            loaded = await repo.get_by_id(case.id)

            assert loaded.doctor_id == "doc-7"
            assert loaded.outcome is Outcome.IMPROVED
            assert [h.name for h in loaded.herb_details] == ["인삼", "백출"]
            assert loaded.tags == ["소화기", "비허"]
            assert loaded.embedding is None
            assert loaded.created_at is not None

    asyncio.run(scenario())


def test_missing_case_raises_not_found(database_url):
    async def scenario():
        async with open_repository(database_url) as repo:
            with pytest.raises(NotFoundError):
                await repo.get_by_id("nope")
            with pytest.raises(NotFoundError):
                await repo.update_embedding("nope", [0.1])

    asyncio.run(scenario())


def test_only_the_author_may_edit_or_delete(database_url):
    async def scenario():
        async with open_repository(database_url) as repo:
            case = await seed_case(repo, doctor_id="doc-1")
            change = ClinicalCaseUpdate(**case_payload(prescription="보중익기탕"))

            with pytest.raises(PermissionDeniedError):
                await repo.update(case.id, "doc-2", change)
            with pytest.raises(PermissionDeniedError):
                await repo.delete(case.id, "doc-2")

            updated = await repo.update(case.id, "doc-1", change)
            assert updated.prescription == "보중익기탕"
            assert updated.case_number == case.case_number
            assert updated.created_at == (await repo.get_by_id(case.id)).created_at

    asyncio.run(scenario())


def test_embedding_bookkeeping(database_url):
    async def scenario():
        async with open_repository(database_url) as repo:
            a = await seed_case(repo)
            b = await seed_case(repo)
            await repo.update_embedding(a.id, [0.1, 0.2])

            pending = await repo.list_missing_embedding()
            assert [c.id for c in pending] == [b.id]
            assert (await repo.get_by_id(a.id)).embedding == [0.1, 0.2]

    asyncio.run(scenario())


def test_search_matches_tags_and_prescription(database_url):
    async def scenario():
        async with open_repository(database_url) as repo:
            await seed_case(repo, prescription="향사육군자탕", tags=["소화기"])
            await seed_case(repo, chief_complaint="요통", prescription="독활기생탕", tags=["근골격"])

            assert len(await repo.list_cases()) == 2
            assert [c.prescription for c in await repo.list_cases(query="근골")] == ["독활기생탕"]
            assert [c.prescription for c in await repo.list_cases(query="육군자")] == ["향사육군자탕"]
            assert [c.case_number for c in await repo.list_cases(query="c-002")] == ["C-002"]
            assert len(await repo.list_cases(limit=1)) == 1

    asyncio.run(scenario())


def test_required_fields_are_enforced():
    with pytest.raises(ValidationError):
        ClinicalCaseCreate(**case_payload(chief_complaint="   "))
    with pytest.raises(ValidationError):
        ClinicalCaseCreate(**case_payload(prescription=""))


def test_optional_fields_are_normalised():
    case = ClinicalCaseCreate(**case_payload(
        tongue_diagnosis="",
        outcome="",
        herb_details=[{"name": "", "dose": "3g"}],
        tags=" 소화기 , , 비허 ",
    ))
    assert case.tongue_diagnosis is None
    assert case.outcome is None
    assert case.herb_details is None
    assert case.tags == ["소화기", "비허"]


def test_update_requires_demographics():
    for missing in ("age_group", "gender"):
        payload = case_payload()
        del payload[missing]
        with pytest.raises(ValidationError):
            ClinicalCaseUpdate(**payload)
    # creation still falls back to the form defaults
    payload = case_payload()
    del payload["gender"]
    assert ClinicalCaseCreate(**payload).gender.value == "남"
