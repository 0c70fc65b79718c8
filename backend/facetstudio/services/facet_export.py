"""Facet result normalization, grouping, selection and CSV export."""

import csv
import io
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from facetstudio.core.logging import get_logger
from facetstudio.models.export_history import ExportHistory

logger = get_logger(__name__)


DEFAULT_EXPORT_COLUMNS = [
    "Input Taxonomy",
    "End Category (C3)",
    "Filter Attributes",
    "Possible Values",
    "Filling Percentage (Approx.)",
    "Priority (High / Medium / Low)",
    "Confidence Score (1–10)",
    "# of available sources",
    "List the sources URL",
]

# Canonical field for each positional export column (A..I)
CANONICAL_FIELDS = [
    "input_taxonomy",
    "end_category",
    "facet_name",
    "possible_values",
    "filling_percentage",
    "priority",
    "confidence_score",
    "num_sources",
    "source_urls",
]

NUMERIC_FIELDS = {"filling_percentage", "confidence_score", "num_sources"}

# Extra spellings seen in stored rows and model output
LEGACY_ALIASES = {
    "facet_name": ["Attributes", "Filter Attribute", "filter_attribute"],
    "possible_values": ["Values"],
    "filling_percentage": ["Percentage (Approx.)", "Filling %"],
    "priority": ["Priority"],
    "confidence_score": ["Score (1-10)", "Score (1–10)", "Confidence Score (1-10)"],
    "source_urls": ["Sources URLs"],
    "end_category": ["End Category"],
}


def _default_for(field_name: str):
    if field_name in NUMERIC_FIELDS:
        return 0
    if field_name == "priority":
        return "Medium"
    return "N/A"


def _field_keys(index: int, field_name: str, columns: Sequence[str]) -> List[str]:
    """Lookup order: canonical name, lettered header, bare letter, readable headers."""
    letter = chr(ord("A") + index)
    default_header = DEFAULT_EXPORT_COLUMNS[index]
    keys = [field_name, f"{letter}. {default_header}"]
    if index < len(columns) and columns[index] != default_header:
        keys.append(f"{letter}. {columns[index]}")
    keys.append(letter)
    if index < len(columns):
        keys.append(columns[index])
    keys.append(default_header)
    keys.extend(LEGACY_ALIASES.get(field_name, []))
    return keys


def _present(value) -> bool:
    return value is not None and value != "" and value != []


def _to_number(value) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace("%", "").strip())
    except ValueError:
        return 0.0


def _to_text(value) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if isinstance(value, dict):
        return ", ".join(f"{k}: {v}" for k, v in value.items())
    return str(value)


@dataclass
class FacetRow:
    """Canonical facet record; downstream code reads only these fields."""

    facet_name: str
    possible_values: str = "N/A"
    filling_percentage: int = 0
    priority: str = "Medium"
    confidence_score: int = 0
    num_sources: int = 0
    source_urls: str = "N/A"
    input_taxonomy: str = "N/A"
    end_category: str = "N/A"
    category_id: Optional[str] = None
    id: Optional[str] = None
    sort_order: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def normalize_facet(raw: Mapping[str, Any], columns: Sequence[str] = DEFAULT_EXPORT_COLUMNS) -> FacetRow:
    """Map any historical column spelling onto one ``FacetRow``."""
    values: Dict[str, Any] = {}
    for index, field_name in enumerate(CANONICAL_FIELDS):
        value = None
        for key in _field_keys(index, field_name, columns):
            if key in raw and _present(raw[key]):
                value = raw[key]
                break
        if value is None:
            value = _default_for(field_name)
        values[field_name] = value

    filling = _to_number(values["filling_percentage"])
    if 0 < filling < 1:
        filling *= 100
    values["filling_percentage"] = int(round(max(0.0, min(100.0, filling))))
    confidence = int(round(_to_number(values["confidence_score"])))
    values["confidence_score"] = max(1, min(10, confidence)) if confidence else 0
    values["num_sources"] = int(_to_number(values["num_sources"]))

    priority = getattr(values["priority"], "value", values["priority"])
    priority = str(priority).strip().capitalize()
    values["priority"] = priority if priority in ("High", "Medium", "Low") else "Medium"

    for text_field in ("facet_name", "possible_values", "source_urls", "input_taxonomy", "end_category"):
        values[text_field] = _to_text(values[text_field])

    raw_id = raw.get("id")
    category_id = raw.get("category_id")
    return FacetRow(
        id=str(raw_id) if raw_id is not None else None,
        category_id=str(category_id) if category_id is not None else None,
        sort_order=int(raw.get("sort_order") or 0),
        **values,
    )


def facet_record_to_row(facet) -> FacetRow:
    """Normalize a stored ``RecommendedFacet``."""
    priority = getattr(facet.priority, "value", facet.priority)
    return normalize_facet({
        "id": facet.id,
        "category_id": facet.category_id,
        "sort_order": facet.sort_order,
        "facet_name": facet.facet_name,
        "possible_values": facet.possible_values,
        "filling_percentage": facet.filling_percentage,
        "priority": priority,
        "confidence_score": facet.confidence_score,
        "num_sources": facet.num_sources,
        "source_urls": facet.source_urls,
        "input_taxonomy": facet.input_taxonomy,
        "end_category": facet.end_category,
    })


def group_by_category(rows: Iterable[FacetRow]) -> Dict[str, List[FacetRow]]:
    """Partition rows into tabs keyed by category id, in first-seen order."""
    groups: Dict[str, List[FacetRow]] = {}
    for row in rows:
        groups.setdefault(row.category_id, []).append(row)
    return groups


def default_tab(groups: Dict[str, List[FacetRow]]) -> Optional[str]:
    return next(iter(groups), None)


class FacetSelection:
    """Row, per-tab and global checkbox state over grouped facets."""

    def __init__(self, rows: Sequence[FacetRow]):
        self.groups = group_by_category(rows)
        self.active_tab = default_tab(self.groups)
        self._all_ids = [r.id for r in rows]
        self.selected: Set[str] = set()

    def toggle_row(self, facet_id: str) -> None:
        if facet_id in self.selected:
            self.selected.discard(facet_id)
        else:
            self.selected.add(facet_id)

    def tab_ids(self, category_id: Optional[str] = None) -> List[str]:
        key = self.active_tab if category_id is None else category_id
        return [r.id for r in self.groups.get(key, [])]

    def tab_selected(self, category_id: Optional[str] = None) -> bool:
        ids = self.tab_ids(category_id)
        return bool(ids) and all(i in self.selected for i in ids)

    def toggle_tab(self, category_id: Optional[str] = None) -> None:
        """Select or clear exactly the rows of one tab."""
        ids = self.tab_ids(category_id)
        if self.tab_selected(category_id):
            self.selected.difference_update(ids)
        else:
            self.selected.update(ids)

    @property
    def all_selected(self) -> bool:
        return bool(self._all_ids) and all(i in self.selected for i in self._all_ids)

    def toggle_all(self) -> None:
        if self.all_selected:
            self.selected.clear()
        else:
            self.selected = set(self._all_ids)

    def selected_rows(self) -> List[FacetRow]:
        return [r for rows in self.groups.values() for r in rows if r.id in self.selected]


def export_columns(job_metadata: Optional[Mapping[str, Any]]) -> List[str]:
    """Job-configured headers when present and well formed, else the defaults."""
    columns = ((job_metadata or {}).get("output_format") or {}).get("columns")
    if (
        isinstance(columns, list)
        and len(columns) == len(DEFAULT_EXPORT_COLUMNS)
        and all(isinstance(c, str) and c.strip() for c in columns)
    ):
        return list(columns)
    return list(DEFAULT_EXPORT_COLUMNS)


def facets_to_csv(
    rows: Iterable[FacetRow],
    columns: Sequence[str] = DEFAULT_EXPORT_COLUMNS,
    categories: Optional[Mapping[str, Any]] = None,
) -> str:
    """Serialize rows: text fields quoted with doubled quotes, numbers bare.

    ``categories`` maps category id to (path, name) and fills the taxonomy
    columns for rows that did not carry them.
    """
    categories = categories or {}
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(list(columns))

    for row in rows:
        path, name = categories.get(row.category_id, (None, None))
        taxonomy = row.input_taxonomy if row.input_taxonomy != "N/A" or not path else path
        end_category = row.end_category if row.end_category != "N/A" or not name else name
        writer.writerow([
            taxonomy,
            end_category,
            row.facet_name,
            row.possible_values,
            int(row.filling_percentage),
            row.priority,
            int(row.confidence_score),
            int(row.num_sources),
            row.source_urls,
        ])

    return output.getvalue()


async def record_export(
    db: AsyncSession,
    client_id: UUID,
    job_id: Optional[UUID],
    category_ids: Iterable,
    exported_by: Optional[UUID],
    export_format: str = "csv",
) -> ExportHistory:
    """Append an export audit row."""
    entry = ExportHistory(
        client_id=client_id,
        job_id=job_id,
        category_ids=sorted({str(c) for c in category_ids}),
        format=export_format,
        exported_by=exported_by,
    )
    db.add(entry)
    await db.commit()
    logger.info("Export recorded", job_id=str(job_id), categories=len(entry.category_ids))
    return entry
