"""Static SEO meta for the level 1-3 analysis functions."""

from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from facetstudio.core.exceptions import NotFoundError, ValidationError
from facetstudio.core.logging import get_logger
from facetstudio.models.facet_job import FacetGenerationJob
from facetstudio.models.project_meta import ProjectMeta

logger = get_logger(__name__)


def level1_meta(category: str) -> Dict[str, List[str]]:
    c = category.lower()
    return {
        "meta_title_patterns": [
            f"{category} - Shop Online",
            f"Buy {category} | Top Brands",
            f"{category} for Sale - Free Shipping",
            f"{category} | Marine Equipment Store",
            f"Shop {category} - Best Prices",
        ],
        "meta_keywords": [
            c, f"marine {c}", f"boat {c}", f"{c} for sale",
            f"buy {c}", f"{c} online", f"{c} store", f"{c} equipment",
        ],
        "meta_description_themes": [
            "Wide selection of products",
            "Competitive pricing and deals",
            "Free shipping options",
            "Top brands available",
            "Expert customer service",
            "Fast delivery",
            "Quality guaranteed",
        ],
        "customer_intent_signals": [
            "Shopping intent - browsing product categories",
            "Price comparison behavior",
            "Brand awareness and preference",
            "Looking for deals and promotions",
            "Seeking variety and selection",
            "Convenience and shipping preferences",
        ],
    }


def level2_meta(l1_category: str, l2_category: str) -> Dict[str, List[str]]:
    c = l2_category.lower()
    return {
        "meta_title_patterns": [
            f"{l2_category} - {l1_category}",
            f"Buy {l2_category} Online",
            f"{l2_category} | {l1_category} Store",
            f"Shop {l2_category} - Free Shipping",
            f"{l2_category} for Boats and Marine",
        ],
        "meta_keywords": [
            c, f"{l1_category.lower()} {c}", f"marine {c}", f"{c} products",
            f"buy {c}", f"{c} for sale", f"boat {c}", f"{c} accessories",
        ],
        "meta_description_themes": [
            "Specialized product selection",
            "Category-specific features highlighted",
            "Use-case applications mentioned",
            "Quality and performance focus",
            "Brand options and variety",
            "Installation and compatibility info",
        ],
        "customer_intent_signals": [
            "Refined shopping intent - specific product family",
            "Use-case evaluation - will it work for my needs",
            "Feature comparison within category",
            "Quality and reliability assessment",
            "Application-specific requirements",
            "Compatibility verification",
        ],
    }


def level3_meta(l1_category: str, l2_category: str, l3_category: str) -> Dict[str, List[str]]:
    # Level 3 has no title patterns
    c = l3_category.lower()
    return {
        "meta_keywords": [
            c, f"buy {c}", f"{c} for sale", f"{c} online", f"marine {c}",
            f"boat {c}", f"{c} price", f"best {c}", f"{c} reviews", f"{c} brands",
        ],
        "meta_description_themes": [
            "Specific product availability and stock",
            "Purchase-ready information (pricing, shipping)",
            "Compatibility details clearly stated",
            "Technical specifications mentioned",
            "What is included in the box",
            "Installation requirements",
            "Warranty and return information",
            "Brand and model specifics",
        ],
        "customer_intent_signals": [
            "High purchase intent - ready to buy",
            "Price sensitivity and comparison",
            "Compatibility verification - will it fit/work",
            "What extras do I need to purchase",
            "Shipping cost and delivery time",
            "Return policy and warranty concerns",
            "Technical specification requirements",
            "Brand and model preference",
            "Stock availability urgency",
        ],
    }


def build_level_meta(level: int, payload: Dict[str, Any]) -> Dict[str, List[str]]:
    """Meta for ``level`` from the request fields that level expects."""
    try:
        if level == 1:
            return level1_meta(payload["category"])
        if level == 2:
            return level2_meta(payload["l1_category"], payload["l2_category"])
        if level == 3:
            return level3_meta(payload["l1_category"], payload["l2_category"], payload["l3_category"])
    except KeyError as e:
        raise ValidationError(f"Missing field: {e.args[0]}") from e
    raise ValidationError(f"Unsupported analysis level: {level}")


async def save_level_meta(
    db: AsyncSession,
    project_id: UUID,
    level: int,
    meta: Dict[str, Any],
) -> ProjectMeta:
    """Insert or replace the meta stored for one level of a project."""
    if not await db.get(FacetGenerationJob, project_id):
        raise NotFoundError("Project not found")

    record = await db.scalar(
        select(ProjectMeta).where(ProjectMeta.project_id == project_id, ProjectMeta.level == level)
    )
    if record:
        record.meta = meta
    else:
        record = ProjectMeta(project_id=project_id, level=level, meta=meta)
        db.add(record)
    await db.commit()
    await db.refresh(record)
    logger.info("Level meta saved", project_id=str(project_id), level=level)
    return record
