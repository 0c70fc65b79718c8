"""Facet generation pipeline behind the generate-facets functions.

Uses Azure OpenAI when it is configured. Without it, every facet prompt
answers with the built-in sample facet list so the rest of the workflow
(ranking, storage, export) runs end to end.
"""

import asyncio
import copy
import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from openai import AzureOpenAI
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from facetstudio.core.config import settings
from facetstudio.core.exceptions import NotFoundError
from facetstudio.core.logging import get_logger
from facetstudio.models.category import Category
from facetstudio.models.facet_job import FacetGenerationJob, FacetPriority, RecommendedFacet, JobStatus
from facetstudio.services.facet_export import DEFAULT_EXPORT_COLUMNS, normalize_facet
from facetstudio.services.facet_ranking import rank_facets, trim_to_limit
from facetstudio.services.level_navigator import split_path
from facetstudio.services.prompt_resolver import INDUSTRY_ANALYSIS, order_prompts

logger = get_logger(__name__)


FACET_SYSTEM_PROMPT = """You are an expert in e-commerce faceted navigation.

CRITICAL: You must follow the EXACT output format specified in the user's prompt.
Look for sections like "OUTPUT FORMAT", "MANDATORY", "Column Name", or table structure instructions.

Your response MUST be a valid JSON object with a "facets" array.
If the prompt specifies columns A, B, C, etc., each facet must use those exact keys."""

CONTEXT_SYSTEM_PROMPT = (
    "You are an e-commerce data analyst. Extract the requested information "
    "and respond ONLY with the requested JSON object."
)

SAMPLE_FACETS: List[Dict[str, Any]] = [
    {"facet_name": "Brand", "possible_values": "Multiple brands (West Marine, Mustang Survival, Spinlock, etc.)",
     "filling_percentage": 100, "priority": "High", "confidence_score": 10, "num_sources": 10,
     "source_urls": ["https://www.westmarine.com", "https://www.defender.com"]},
    {"facet_name": "Price Range", "possible_values": "$0-$50, $50-$100, $100-$200, $200-$500, $500+",
     "filling_percentage": 100, "priority": "High", "confidence_score": 10, "num_sources": 10,
     "source_urls": ["https://www.westmarine.com", "https://www.defender.com"]},
    {"facet_name": "Type", "possible_values": "Inflatable, Foam, Hybrid",
     "filling_percentage": 95, "priority": "High", "confidence_score": 10, "num_sources": 8,
     "source_urls": ["https://www.westmarine.com"]},
    {"facet_name": "Size", "possible_values": "XS, S, M, L, XL, XXL, XXXL",
     "filling_percentage": 95, "priority": "High", "confidence_score": 10, "num_sources": 8,
     "source_urls": ["https://www.westmarine.com", "https://www.defender.com"]},
    {"facet_name": "Material", "possible_values": "Nylon, Polyester, Neoprene, Foam, Mesh",
     "filling_percentage": 90, "priority": "High", "confidence_score": 9, "num_sources": 8,
     "source_urls": ["https://www.westmarine.com"]},
    {"facet_name": "Certification/Safety Rating", "possible_values": "USCG Approved, CE Certified, ISO Certified, SOLAS",
     "filling_percentage": 85, "priority": "High", "confidence_score": 9, "num_sources": 7,
     "source_urls": ["https://www.westmarine.com", "https://www.uscg.mil"]},
    {"facet_name": "Color", "possible_values": "Red, Orange, Yellow, Blue, Black, Hi-Vis",
     "filling_percentage": 85, "priority": "High", "confidence_score": 8, "num_sources": 7,
     "source_urls": ["https://www.westmarine.com"]},
    {"facet_name": "Style", "possible_values": "Vest, Belt Pack, Bib, Harness",
     "filling_percentage": 85, "priority": "Medium", "confidence_score": 8, "num_sources": 7,
     "source_urls": ["https://www.westmarine.com"]},
    {"facet_name": "Suitable Use", "possible_values": "Coastal, Offshore, Inland Waters, Near Shore",
     "filling_percentage": 80, "priority": "Medium", "confidence_score": 8, "num_sources": 6,
     "source_urls": ["https://www.westmarine.com"]},
    {"facet_name": "Water Activation Type", "possible_values": "Manual, Automatic, Hybrid",
     "filling_percentage": 70, "priority": "Medium", "confidence_score": 7, "num_sources": 5,
     "source_urls": ["https://www.westmarine.com"]},
    {"facet_name": "Includes Whistle", "possible_values": "Yes, No",
     "filling_percentage": 70, "priority": "Medium", "confidence_score": 7, "num_sources": 5,
     "source_urls": ["https://www.westmarine.com"]},
    {"facet_name": "Adjustable Straps", "possible_values": "Yes, No",
     "filling_percentage": 85, "priority": "Low", "confidence_score": 7, "num_sources": 5,
     "source_urls": ["https://www.westmarine.com"]},
    {"facet_name": "Gender Fit", "possible_values": "Unisex, Mens, Womens",
     "filling_percentage": 55, "priority": "Low", "confidence_score": 6, "num_sources": 4,
     "source_urls": ["https://www.westmarine.com"]},
    {"facet_name": "Pockets/Storage", "possible_values": "Yes, No",
     "filling_percentage": 50, "priority": "Low", "confidence_score": 5, "num_sources": 3,
     "source_urls": ["https://www.westmarine.com"]},
]

_COLUMN_LINE = re.compile(r"^(?:Column\s+)?([A-Z])[\.\:]\s*(.+?)$", re.IGNORECASE | re.MULTILINE)
_TABLE_HINT = re.compile(r"OUTPUT FORMAT.*table|Column Name|Column A", re.IGNORECASE | re.DOTALL)
_FACET_COUNT = re.compile(r"contain\s+(\d+)(?:\s*[–-]\s*(\d+))?\s+filters", re.IGNORECASE)
_PLACEHOLDER = re.compile(r"{{\s*([A-Za-z0-9_]+)\s*}}")


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def extract_output_format(template: str) -> Tuple[bool, List[str]]:
    """Detect a table-style output request and the column headers it names."""
    if not _TABLE_HINT.search(template or ""):
        return False, []
    columns = [m.group(2).strip() for m in _COLUMN_LINE.finditer(template) if len(m.group(2).strip()) < 100]
    if len(columns) >= 5:
        return True, columns[: len(DEFAULT_EXPORT_COLUMNS)]
    return True, list(DEFAULT_EXPORT_COLUMNS)


def facet_count_bounds(template: str) -> Tuple[int, int]:
    """(min, max) facets requested by "contain N-M filters", zeros when absent."""
    match = _FACET_COUNT.search(template or "")
    if not match:
        return 0, 0
    low = int(match.group(1))
    high = int(match.group(2)) if match.group(2) else low
    return low, high


def category_context(category_path: str, name: str) -> Dict[str, str]:
    context = {"Category_Name": name, "Category_Path": category_path or name}
    segments = split_path(category_path) or [name]
    for index, segment in enumerate(segments, start=1):
        context[f"Level_{index}_Category_Name"] = segment
    return context


def fill_template(template: str, *contexts: Dict[str, Any]) -> str:
    """Replace {{Key}} placeholders; non-string values are rendered as JSON."""
    values: Dict[str, Any] = {}
    for context in contexts:
        values.update(context)

    def replace(match):
        key = match.group(1)
        if key not in values:
            return match.group(0)
        value = values[key]
        return value if isinstance(value, str) else json.dumps(value, indent=2)

    return _PLACEHOLDER.sub(replace, template or "")


def clean_generated_facet(raw: Dict[str, Any], columns: Sequence[str], category: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Canonical insert values for one model facet, None when malformed."""
    if any(len(str(k)) > 100 for k in raw.keys()):
        return None
    row = normalize_facet(raw, columns or DEFAULT_EXPORT_COLUMNS)
    if not row.facet_name.strip() or row.facet_name == "N/A":
        return None

    confidence = row.confidence_score or 5
    source_urls = raw.get("source_urls")
    if not isinstance(source_urls, list):
        source_urls = [u.strip() for u in row.source_urls.split(",") if u.strip() and u.strip() != "N/A"]

    return {
        "facet_name": row.facet_name.strip(),
        "possible_values": row.possible_values,
        "filling_percentage": row.filling_percentage,
        "priority": FacetPriority(row.priority),
        "confidence_score": max(1, min(10, confidence)),
        "num_sources": row.num_sources,
        "source_urls": source_urls,
        "input_taxonomy": row.input_taxonomy if row.input_taxonomy != "N/A" else category["category_path"],
        "end_category": row.end_category if row.end_category != "N/A" else category["name"],
        "reasoning": raw.get("reasoning") or None,
    }


class FacetGenerator:
    """Chat-completion wrapper returning parsed JSON objects."""

    def __init__(self):
        self.enabled = bool(settings.AZURE_OPENAI_ENDPOINT and settings.AZURE_OPENAI_KEY)
        self.client = None

        if self.enabled:
            self.client = AzureOpenAI(
                azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
                api_key=settings.AZURE_OPENAI_KEY,
                api_version=settings.AZURE_API_VERSION,
            )
            logger.info("Azure OpenAI facet generator initialized")

    def complete(self, system_prompt: str, category_name: str, category_path: str, template: str) -> Dict[str, Any]:
        if not self.enabled or not self.client:
            if system_prompt == CONTEXT_SYSTEM_PROMPT:
                return {"category": category_name, "meta_keywords": [category_name.lower()]}
            return {"facets": copy.deepcopy(SAMPLE_FACETS)}

        user_prompt = f"Category Path: {category_path}\nCategory Name: {category_name}\n\n{template}"
        response = self.client.chat.completions.create(
            model=settings.AZURE_COMPLETION_DEPLOYMENT,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.5,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse AI response: {e}") from e

    async def acomplete(self, *args) -> Dict[str, Any]:
        return await asyncio.to_thread(self.complete, *args)


facet_generator = FacetGenerator()


async def _run_industry_analysis(
    generator: FacetGenerator,
    prompt: Dict[str, Any],
    category: Dict[str, Any],
    context: Dict[str, str],
) -> Dict[str, Any]:
    """Level-by-level SEO context; each level may reference earlier results."""
    generated: Dict[str, Any] = {}
    template = fill_template(prompt.get("content") or "", context)
    meta = await generator.acomplete(CONTEXT_SYSTEM_PROMPT, category["name"], category["category_path"], template)
    generated["Level_1_SEO_Meta"] = meta
    generated["Level_1_Meta_JSON"] = meta
    generated["Industry_SEO_Meta"] = dict(meta)

    levels = (prompt.get("metadata") or {}).get("industry_levels") or {}
    for level in sorted(levels, key=lambda k: int(k)):
        level_template = fill_template(levels[level], context, generated)
        level_meta = await generator.acomplete(
            CONTEXT_SYSTEM_PROMPT, category["name"], category["category_path"], level_template
        )
        generated[f"Level_{int(level)}_SEO_Meta"] = level_meta
        generated[f"Level_{int(level)}_Meta_JSON"] = level_meta
        generated["Industry_SEO_Meta"].update(level_meta)
    generated["Latest_Level_Result"] = meta if not levels else generated[f"Level_{max(int(k) for k in levels)}_SEO_Meta"]
    return generated


async def _run_facet_prompt(
    generator: FacetGenerator,
    prompt: Dict[str, Any],
    category: Dict[str, Any],
    context: Dict[str, str],
    generated: Dict[str, Any],
) -> Tuple[List[Dict[str, Any]], List[str]]:
    template = fill_template(prompt.get("content") or "", context, generated)
    use_table, columns = extract_output_format(template)
    result = await generator.acomplete(FACET_SYSTEM_PROMPT, category["name"], category["category_path"], template)
    facets = result.get("facets") or []
    if not isinstance(facets, list):
        facets = []

    _, max_facets = facet_count_bounds(template)
    if max_facets:
        facets = trim_to_limit(
            [normalize_facet(f, columns or DEFAULT_EXPORT_COLUMNS).to_dict() for f in facets], max_facets
        )
    return facets, (columns if use_table else [])


async def generate_job_facets(
    db: AsyncSession,
    job_id: UUID,
    category_ids: Sequence[str],
    prompts: Sequence[Dict[str, Any]],
    generator: Optional[FacetGenerator] = None,
) -> Dict[str, Any]:
    """Run every prompt for every category and store the ranked facets.

    A failing prompt or category is logged and skipped. A job that ends
    with no facets is stored as failed, never completed.
    """
    generator = generator or facet_generator
    job = await db.get(FacetGenerationJob, job_id)
    if not job:
        raise NotFoundError("Job not found")

    ids = [UUID(str(c)) for c in category_ids]
    result = await db.execute(select(Category).where(Category.id.in_(ids)))
    stored = {c.id: c for c in result.scalars().all()}
    if not stored:
        raise NotFoundError("Categories not found")

    # Prompts may carry categories re-projected to the navigated depth
    projected: Dict[str, Dict[str, Any]] = {}
    for prompt in prompts:
        for ctx in prompt.get("context_categories") or []:
            projected.setdefault(str(ctx.get("id")), ctx)

    job.status = JobStatus.PROCESSING
    await db.commit()

    ordered = order_prompts([_PromptView(p) for p in prompts])
    prompt_names = ", ".join(p.name for p in ordered)
    output_columns: List[str] = []
    to_insert: List[Dict[str, Any]] = []
    processed = 0

    for category_id in ids:
        category = stored.get(category_id)
        if category is None:
            continue
        view = projected.get(str(category_id)) or {}
        cat = {
            "category_path": view.get("category_path") or category.category_path,
            "name": view.get("name") or category.name,
        }
        context = category_context(cat["category_path"], cat["name"])
        generated: Dict[str, Any] = {}
        seen_names = set()

        for prompt in ordered:
            try:
                if prompt.name == INDUSTRY_ANALYSIS:
                    generated.update(await _run_industry_analysis(generator, prompt.raw, cat, context))
                    continue
                facets, columns = await _run_facet_prompt(generator, prompt.raw, cat, context, generated)
            except Exception as e:
                logger.warning(
                    "Prompt failed for category",
                    prompt=prompt.name,
                    category=cat["name"],
                    error=str(e),
                )
                continue

            if columns and not output_columns:
                output_columns = columns
            for raw in facets:
                clean = clean_generated_facet(raw, columns, cat)
                if clean is None:
                    logger.warning("Skipping malformed facet", category=cat["name"])
                    continue
                key = clean["facet_name"].lower()
                if key in seen_names:
                    continue
                seen_names.add(key)
                clean.update({
                    "job_id": job.id,
                    "category_id": category.id,
                    "client_id": job.client_id,
                    "prompt_used": prompt_names,
                })
                to_insert.append(clean)

        processed += 1
        job.processed_categories = processed
        job.progress = round(processed / len(ids) * 100)
        await db.commit()

    for facet in rank_facets(to_insert):
        db.add(RecommendedFacet(**facet))

    if output_columns:
        job.extra = {**(job.extra or {}), "output_format": {"columns": output_columns, "useTableFormat": True}}
    if to_insert:
        job.status = JobStatus.COMPLETED
        job.progress = 100
    else:
        job.status = JobStatus.FAILED
        job.error_message = "No facets were generated"
    job.completed_at = _now()
    await db.commit()

    logger.info("Job facets generated", job_id=str(job_id), facets=len(to_insert), categories=processed)
    return {
        "success": True,
        "facets_generated": len(to_insert),
        "categories_processed": processed,
    }


class _PromptView:
    """Attribute access over a request prompt dict for ``order_prompts``."""

    def __init__(self, raw: Dict[str, Any]):
        self.raw = raw
        self.name = raw.get("name") or ""


async def replace_project_facets(db: AsyncSession, project_id: UUID) -> List[RecommendedFacet]:
    """Swap a project's facets for the ranked sample list."""
    job = await db.get(FacetGenerationJob, project_id)
    if not job:
        raise NotFoundError("Project not found")

    await db.execute(delete(RecommendedFacet).where(RecommendedFacet.job_id == job.id))
    facets = []
    for sample in rank_facets(copy.deepcopy(SAMPLE_FACETS)):
        sample["priority"] = FacetPriority(sample["priority"])
        facet = RecommendedFacet(job_id=job.id, client_id=job.client_id, category_id=None, **sample)
        db.add(facet)
        facets.append(facet)
    await db.commit()
    logger.info("Sample facets stored", project_id=str(project_id), facets=len(facets))
    return facets
