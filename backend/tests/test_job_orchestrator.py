"""Tests for generation job submission, duplicate detection and failure handling."""

import json
import uuid

import httpx
import pytest
from sqlalchemy import func, select

from facetstudio.core.context import ClientContext
from facetstudio.core.exceptions import (
    ConfigurationError,
    DuplicateJobFound,
    GenerationFailed,
    ValidationError,
)
from facetstudio.models import Category, UserRole
from facetstudio.models.facet_job import FacetGenerationJob, JobStatus, RecommendedFacet
from facetstudio.services.facet_generator import generate_job_facets
from facetstudio.services.functions_client import FunctionsClient
from facetstudio.services.job_orchestrator import (
    build_prompt_payload,
    find_duplicate_job,
    job_fingerprint,
    submit_generation,
)
from facetstudio.services.prompt_resolver import ResolvedPrompt
from facetstudio.services.selection_queue import load_queue, save_queue

from conftest import (
    CLIENT_ID,
    CLIENT_USER_ID,
    ORPHAN_USER_ID,
    category_id,
    prompt_id,
)

CONTEXT = ClientContext(user_id=CLIENT_USER_ID, client_id=CLIENT_ID, role=UserRole.CLIENT_USER)
CATEGORY_IDS = [str(category_id("Marine > Safety > Flares")), str(category_id("Marine > Electronics > GPS"))]
PROMPT_IDS = [prompt_id("Master Prompt"), prompt_id("Geography")]


def client_for(handler) -> FunctionsClient:
    return FunctionsClient(base_url="http://functions.test", anon_key="k", transport=httpx.MockTransport(handler))


def failing_handler(request):
    raise AssertionError(f"unexpected call to {request.url}")


async def job_count(session) -> int:
    return await session.scalar(select(func.count()).select_from(FacetGenerationJob))


class TestFingerprint:
    def test_order_does_not_matter(self):
        assert job_fingerprint(["b", "a"], ["y", "x"]) == job_fingerprint(["a", "b"], ["x", "y"])

    def test_categories_and_prompts_are_distinct_parts(self):
        assert job_fingerprint(["a"], ["b"]) == "a|b"
        assert job_fingerprint(["a"], ["b"]) != job_fingerprint(["b"], ["a"])


async def test_duplicate_requires_exact_match(session):
    session.add(FacetGenerationJob(
        client_id=CLIENT_ID,
        category_ids=["c1", "c2"],
        selected_prompts=["p1"],
        status=JobStatus.COMPLETED,
    ))
    await session.commit()

    assert await find_duplicate_job(session, CLIENT_ID, ["c2", "c1"], ["p1"]) is not None
    assert await find_duplicate_job(session, CLIENT_ID, ["c1"], ["p1"]) is None
    assert await find_duplicate_job(session, CLIENT_ID, ["c1", "c2"], ["p1", "p2"]) is None


async def test_failed_jobs_are_not_duplicates(session):
    session.add(FacetGenerationJob(
        client_id=CLIENT_ID, category_ids=["c1"], selected_prompts=["p1"], status=JobStatus.FAILED
    ))
    await session.commit()
    assert await find_duplicate_job(session, CLIENT_ID, ["c1"], ["p1"]) is None


async def test_rejects_when_no_required_prompt(session):
    with pytest.raises(ValidationError):
        await submit_generation(
            session, CONTEXT, CATEGORY_IDS, [prompt_id("Geography")], client=client_for(failing_handler)
        )
    assert await job_count(session) == 0


async def test_rejects_empty_queue(session):
    with pytest.raises(ValidationError):
        await submit_generation(session, CONTEXT, [], PROMPT_IDS, client=client_for(failing_handler))


async def test_user_without_client_creates_no_job(session):
    orphan = ClientContext(user_id=ORPHAN_USER_ID, client_id=None)
    with pytest.raises(ConfigurationError):
        await submit_generation(session, orphan, CATEGORY_IDS, PROMPT_IDS, client=client_for(failing_handler))
    assert await job_count(session) == 0


async def test_zero_facets_marks_job_failed(session):
    def handler(request):
        return httpx.Response(200, json={"success": True, "facets_generated": 0})

    with pytest.raises(GenerationFailed) as excinfo:
        await submit_generation(session, CONTEXT, CATEGORY_IDS, PROMPT_IDS, client=client_for(handler))

    job = await session.get(FacetGenerationJob, excinfo.value.job_id)
    await session.refresh(job)
    assert job.status == JobStatus.FAILED
    assert job.error_message == "No facets were generated"
    assert await session.scalar(select(func.count()).select_from(RecommendedFacet)) == 0


async def test_error_status_marks_job_failed(session):
    def handler(request):
        return httpx.Response(500, json={"error": "model unavailable"})

    with pytest.raises(GenerationFailed) as excinfo:
        await submit_generation(session, CONTEXT, CATEGORY_IDS, PROMPT_IDS, client=client_for(handler))

    job = await session.get(FacetGenerationJob, excinfo.value.job_id)
    await session.refresh(job)
    assert job.status == JobStatus.FAILED
    assert job.error_message == "model unavailable"


async def test_successful_generation(session, session_factory):
    await save_queue(session, CLIENT_USER_ID, CATEGORY_IDS)
    seen = {}

    async def handler(request):
        body = json.loads(request.content)
        seen["auth"] = request.headers["Authorization"]
        seen["prompts"] = [p["name"] for p in body["prompts"]]
        async with session_factory() as db:
            result = await generate_job_facets(db, uuid.UUID(body["job_id"]), body["category_ids"], body["prompts"])
        return httpx.Response(200, json=result)

    result = await submit_generation(session, CONTEXT, CATEGORY_IDS, PROMPT_IDS, client=client_for(handler))

    assert seen["auth"] == "Bearer k"
    assert seen["prompts"] == ["Geography", "Master Prompt"]
    assert result.job.status == JobStatus.COMPLETED
    assert result.job.progress == 100
    assert result.job.processed_categories == 2
    assert result.facets
    assert [f.sort_order for f in result.facets] == list(range(1, len(result.facets) + 1))
    assert {str(f.category_id) for f in result.facets} == set(CATEGORY_IDS)
    assert await load_queue(session, CLIENT_USER_ID) == []


async def test_repeat_request_is_reported_as_duplicate(session, session_factory):
    async def handler(request):
        body = json.loads(request.content)
        async with session_factory() as db:
            return httpx.Response(
                200, json=await generate_job_facets(db, uuid.UUID(body["job_id"]), body["category_ids"], body["prompts"])
            )

    first = await submit_generation(session, CONTEXT, CATEGORY_IDS, PROMPT_IDS, client=client_for(handler))

    with pytest.raises(DuplicateJobFound) as excinfo:
        await submit_generation(
            session, CONTEXT, list(reversed(CATEGORY_IDS)), PROMPT_IDS, client=client_for(failing_handler)
        )
    assert excinfo.value.job.id == first.job.id

    forced = await submit_generation(
        session, CONTEXT, CATEGORY_IDS, PROMPT_IDS, force_new=True, client=client_for(handler)
    )
    assert forced.job.id != first.job.id
    assert await job_count(session) == 2


async def test_industry_analysis_alone_passes_validation(session, session_factory):
    host_status = {}

    async def handler(request):
        body = json.loads(request.content)
        job_id = uuid.UUID(body["job_id"])
        async with session_factory() as db:
            result = await generate_job_facets(db, job_id, body["category_ids"], body["prompts"])
            host_status["status"] = (await db.get(FacetGenerationJob, job_id)).status
        return httpx.Response(200, json=result)

    with pytest.raises(GenerationFailed) as excinfo:
        await submit_generation(
            session, CONTEXT, CATEGORY_IDS, [prompt_id("Industry Analysis")], client=client_for(handler)
        )

    # Industry Analysis only feeds context to later prompts
    assert host_status["status"] == JobStatus.FAILED
    job = await session.get(FacetGenerationJob, excinfo.value.job_id)
    await session.refresh(job)
    assert job.status == JobStatus.FAILED
    assert job.error_message == "No facets were generated"
    assert await find_duplicate_job(
        session, CLIENT_ID, CATEGORY_IDS, [str(prompt_id("Industry Analysis"))]
    ) is None


async def test_master_prompt_alone_passes_validation(session, session_factory):
    async def handler(request):
        body = json.loads(request.content)
        async with session_factory() as db:
            return httpx.Response(
                200, json=await generate_job_facets(db, uuid.UUID(body["job_id"]), body["category_ids"], body["prompts"])
            )

    result = await submit_generation(
        session, CONTEXT, CATEGORY_IDS, [prompt_id("Master Prompt")], client=client_for(handler)
    )
    assert result.job.status == JobStatus.COMPLETED


class TestPromptPayload:
    PROMPTS = [
        ResolvedPrompt(id=prompt_id("Master Prompt"), name="Master Prompt", level=3, type="facet", content="x"),
        ResolvedPrompt(id=prompt_id("Industry Analysis"), name="Industry Analysis", level=1, type="context", content="y"),
    ]
    CATEGORIES = [
        Category(
            id=category_id("Marine > Safety > Flares"),
            category_path="Marine > Safety > Flares",
            level=3,
            name="Flares",
        ),
    ]

    def test_categories_cut_to_depth(self):
        payload = build_prompt_payload(self.PROMPTS, self.CATEGORIES, depth=2)
        assert [p["name"] for p in payload] == ["Industry Analysis", "Master Prompt"]
        for prompt in payload:
            assert prompt["context_categories"] == [{
                "id": str(category_id("Marine > Safety > Flares")),
                "category_path": "Marine > Safety",
                "level": 2,
                "name": "Safety",
            }]

    def test_no_depth_keeps_stored_path(self):
        ctx = build_prompt_payload(self.PROMPTS, self.CATEGORIES)[0]["context_categories"][0]
        assert (ctx["category_path"], ctx["level"], ctx["name"]) == ("Marine > Safety > Flares", 3, "Flares")
