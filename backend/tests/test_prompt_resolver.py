"""Tests for prompt ordering, per-client overrides and version history."""

from types import SimpleNamespace

from facetstudio.models import PromptTemplate
from facetstudio.services.prompt_resolver import (
    order_prompts,
    prompt_history,
    resolve_prompts,
    restore_version,
    save_prompt_version,
)

from conftest import CLIENT_ID, OTHER_CLIENT_ID, prompt_id


def named(*names):
    return [SimpleNamespace(name=n) for n in names]


class TestOrdering:
    def test_industry_analysis_first_master_last(self):
        ordered = order_prompts(named("Master Prompt", "Geography", "Industry Analysis", "Industry Keywords"))
        assert [p.name for p in ordered] == [
            "Industry Analysis",
            "Industry Keywords",
            "Geography",
            "Master Prompt",
        ]

    def test_unknown_prompts_run_before_master(self):
        ordered = order_prompts(named("Master Prompt", "Custom", "Geography"))
        assert [p.name for p in ordered] == ["Geography", "Custom", "Master Prompt"]


async def test_resolve_returns_active_prompts_in_execution_order(session):
    prompts = await resolve_prompts(session, CLIENT_ID)
    assert [p.name for p in prompts] == [
        "Industry Analysis",
        "Industry Keywords",
        "Geography",
        "Master Prompt",
    ]
    assert not any(p.is_override for p in prompts)


async def test_client_prompts_are_private(session):
    session.add(PromptTemplate(name="Acme Only", template="x", client_id=CLIENT_ID))
    await session.commit()

    assert "Acme Only" in [p.name for p in await resolve_prompts(session, CLIENT_ID)]
    assert "Acme Only" not in [p.name for p in await resolve_prompts(session, OTHER_CLIENT_ID)]


async def test_client_version_overrides_only_that_client(session):
    template = await session.get(PromptTemplate, prompt_id("Geography"))
    await save_prompt_version(session, template, "Acme regions for {{Category_Name}}.", client_id=CLIENT_ID)

    mine = {p.name: p for p in await resolve_prompts(session, CLIENT_ID, [template.id])}
    theirs = {p.name: p for p in await resolve_prompts(session, OTHER_CLIENT_ID, [template.id])}

    assert mine["Geography"].content == "Acme regions for {{Category_Name}}."
    assert mine["Geography"].is_override
    assert theirs["Geography"].content == "Regional notes for {{Category_Name}}."


async def test_versions_increment_and_only_latest_is_active(session):
    template = await session.get(PromptTemplate, prompt_id("Geography"))
    first = await save_prompt_version(session, template, "one", client_id=CLIENT_ID)
    second = await save_prompt_version(session, template, "two", client_id=CLIENT_ID)

    await session.refresh(first)
    assert (first.version, second.version) == (1, 2)
    assert not first.is_active
    assert second.is_active

    resolved = await resolve_prompts(session, CLIENT_ID, [template.id])
    assert resolved[0].content == "two"
    assert resolved[0].version == 2


async def test_global_save_rewrites_base_template(session):
    template = await session.get(PromptTemplate, prompt_id("Geography"))
    await save_prompt_version(session, template, "global text")
    await session.refresh(template)
    assert template.template == "global text"
    assert template.current_version == 1

    resolved = await resolve_prompts(session, OTHER_CLIENT_ID, [template.id])
    assert resolved[0].content == "global text"


async def test_history_falls_back_to_global(session):
    template = await session.get(PromptTemplate, prompt_id("Geography"))
    await save_prompt_version(session, template, "global text")

    history = await prompt_history(session, template.id, CLIENT_ID)
    assert [v.template_content for v in history] == ["global text"]

    await save_prompt_version(session, template, "acme text", client_id=CLIENT_ID)
    history = await prompt_history(session, template.id, CLIENT_ID)
    assert [v.template_content for v in history] == ["acme text"]


async def test_restore_saves_old_content_as_newest(session):
    template = await session.get(PromptTemplate, prompt_id("Geography"))
    first = await save_prompt_version(session, template, "one", client_id=CLIENT_ID)
    await save_prompt_version(session, template, "two", client_id=CLIENT_ID)

    restored = await restore_version(session, template, first.id, client_id=CLIENT_ID)
    assert restored.version == 3
    assert restored.template_content == "one"
    assert restored.change_notes == "Restored from Version 1"

    history = await prompt_history(session, template.id, CLIENT_ID)
    assert [v.version for v in history] == [3, 2, 1]
