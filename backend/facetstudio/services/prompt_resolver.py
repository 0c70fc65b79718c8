"""Prompt template resolution, ordering and version management."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from facetstudio.core.exceptions import NotFoundError, ValidationError
from facetstudio.core.logging import get_logger
from facetstudio.models.prompt_template import PromptTemplate, PromptOverride

logger = get_logger(__name__)

INDUSTRY_ANALYSIS = "Industry Analysis"
MASTER_PROMPT = "Master Prompt"

# Generation requires at least one of these to be selected
REQUIRED_PROMPT_NAMES = frozenset({INDUSTRY_ANALYSIS, MASTER_PROMPT})

PROMPT_EXECUTION_ORDER = [
    INDUSTRY_ANALYSIS,
    "Industry Keywords",
    "Competitor Analysis",
    "Geography",
    "Output Format-1",
    MASTER_PROMPT,
]
UNKNOWN_ORDER = 99


@dataclass
class ResolvedPrompt:
    """A prompt as a client sees it, with any active override applied."""

    id: UUID
    name: str
    level: int
    type: str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    execution_order: int = UNKNOWN_ORDER
    version: int = 1
    is_override: bool = False
    client_id: Optional[UUID] = None


def execution_index(name: str) -> int:
    try:
        return PROMPT_EXECUTION_ORDER.index(name)
    except ValueError:
        return UNKNOWN_ORDER


def order_prompts(prompts: Sequence[Any]) -> List[Any]:
    """Industry Analysis first, Master Prompt last, the rest in canonical order."""

    def key(prompt):
        if prompt.name == INDUSTRY_ANALYSIS:
            return (0, 0)
        if prompt.name == MASTER_PROMPT:
            return (2, 0)
        return (1, execution_index(prompt.name))

    return sorted(prompts, key=key)


def _resolve(base: PromptTemplate, override: Optional[PromptOverride]) -> ResolvedPrompt:
    resolved = ResolvedPrompt(
        id=base.id,
        name=base.name,
        level=base.level,
        type=base.type,
        content=base.template,
        metadata=dict(base.extra or {}),
        execution_order=base.execution_order,
        version=base.current_version,
        client_id=base.client_id,
    )
    if override is not None:
        resolved.content = override.template_content
        resolved.metadata = dict(override.extra or base.extra or {})
        resolved.version = override.version
        resolved.is_override = True
    return resolved


async def resolve_prompts(
    db: AsyncSession,
    client_id: Optional[UUID],
    prompt_ids: Optional[Sequence[UUID]] = None,
) -> List[ResolvedPrompt]:
    """Active templates visible to a client, overrides applied, in execution order."""
    query = select(PromptTemplate).where(PromptTemplate.is_active.is_(True))
    if prompt_ids is not None:
        query = query.where(PromptTemplate.id.in_(list(prompt_ids)))
    result = await db.execute(query)
    templates = [
        t for t in result.scalars().all()
        if t.client_id is None or t.client_id == client_id
    ]

    overrides: Dict[UUID, PromptOverride] = {}
    if client_id is not None and templates:
        override_result = await db.execute(
            select(PromptOverride).where(
                PromptOverride.client_id == client_id,
                PromptOverride.is_active.is_(True),
                PromptOverride.prompt_template_id.in_([t.id for t in templates]),
            )
        )
        for override in override_result.scalars().all():
            overrides[override.prompt_template_id] = override

    resolved = [_resolve(t, overrides.get(t.id)) for t in templates]
    return sorted(resolved, key=lambda p: (execution_index(p.name), p.execution_order, p.name))


async def create_prompt(
    db: AsyncSession,
    name: str,
    template: str,
    level: int = 1,
    prompt_type: str = "facet",
    client_id: Optional[UUID] = None,
) -> PromptTemplate:
    if not name.strip() or not template.strip():
        raise ValidationError("Prompt name and template content are required.")
    prompt = PromptTemplate(
        name=name.strip(),
        template=template,
        level=level,
        type=prompt_type,
        client_id=client_id,
        execution_order=execution_index(name.strip()),
        current_version=1,
    )
    db.add(prompt)
    await db.commit()
    await db.refresh(prompt)
    logger.info("Prompt created", prompt_id=str(prompt.id), name=prompt.name)
    return prompt


async def save_prompt_version(
    db: AsyncSession,
    template: PromptTemplate,
    content: str,
    client_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    change_notes: Optional[str] = None,
    edited_by: Optional[UUID] = None,
) -> PromptOverride:
    """Store a new active version; client versions become that client's override.

    A global save (``client_id`` None) also rewrites the base template.
    """
    if not content.strip():
        raise ValidationError("Template content cannot be empty.")

    scope = (
        PromptOverride.client_id == client_id
        if client_id is not None
        else PromptOverride.client_id.is_(None)
    )
    count = await db.scalar(
        select(func.count()).select_from(PromptOverride).where(
            PromptOverride.prompt_template_id == template.id, scope
        )
    )
    version_number = (count or 0) + 1

    await db.execute(
        update(PromptOverride)
        .where(PromptOverride.prompt_template_id == template.id, scope)
        .values(is_active=False)
    )

    version = PromptOverride(
        prompt_template_id=template.id,
        client_id=client_id,
        template_content=content,
        extra=metadata if metadata is not None else dict(template.extra or {}),
        version=version_number,
        change_notes=change_notes,
        edited_by=edited_by,
        is_active=True,
    )
    db.add(version)

    if client_id is None:
        template.template = content
        template.current_version = version_number
        if metadata is not None:
            template.extra = metadata

    await db.commit()
    await db.refresh(version)
    logger.info(
        "Prompt version saved",
        prompt_id=str(template.id),
        client_id=str(client_id) if client_id else None,
        version=version_number,
    )
    return version


async def prompt_history(
    db: AsyncSession,
    template_id: UUID,
    client_id: Optional[UUID],
) -> List[PromptOverride]:
    """Client-specific history, falling back to the global history when empty."""
    if client_id is not None:
        result = await db.execute(
            select(PromptOverride)
            .where(
                PromptOverride.prompt_template_id == template_id,
                PromptOverride.client_id == client_id,
            )
            .order_by(PromptOverride.version.desc())
        )
        rows = result.scalars().all()
        if rows:
            return list(rows)

    result = await db.execute(
        select(PromptOverride)
        .where(
            PromptOverride.prompt_template_id == template_id,
            PromptOverride.client_id.is_(None),
        )
        .order_by(PromptOverride.version.desc())
    )
    return list(result.scalars().all())


async def restore_version(
    db: AsyncSession,
    template: PromptTemplate,
    version_id: UUID,
    client_id: Optional[UUID],
    edited_by: Optional[UUID] = None,
) -> PromptOverride:
    """Restore an older version by saving it again as the newest one."""
    old = await db.get(PromptOverride, version_id)
    if not old or old.prompt_template_id != template.id:
        raise NotFoundError("Prompt version not found")
    return await save_prompt_version(
        db,
        template,
        old.template_content,
        client_id=client_id,
        metadata=old.extra or template.extra or {},
        change_notes=f"Restored from Version {old.version}",
        edited_by=edited_by,
    )
