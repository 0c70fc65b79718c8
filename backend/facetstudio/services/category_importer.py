"""Category CSV parsing, import and manual taxonomy edits."""

import math
import os
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple
from uuid import UUID

import numpy as np
import pandas as pd
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from facetstudio.core.config import settings
from facetstudio.core.exceptions import NotFoundError, ValidationError
from facetstudio.core.logging import get_logger
from facetstudio.models.category import Category
from facetstudio.services.level_navigator import MAX_LEVELS, join_path, split_path

logger = get_logger(__name__)

BREADCRUMBS_COLUMN = "breadcrumbs"
INDUSTRY_COLUMNS = ("industry_name", "industry")
ALLOWED_EXTENSIONS = (".csv", ".txt")


@dataclass
class ImportResult:
    imported: int = 0
    failed: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"imported": self.imported, "failed": self.failed, "skipped": self.skipped}


def _clean(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    if isinstance(value, np.floating) and np.isnan(value):
        return ""
    return str(value).strip()


def parse_breadcrumb(value: Any) -> Optional[Tuple[str, int, str]]:
    """(path, level, name) for a breadcrumb cell, None when it is empty."""
    segments = split_path(_clean(value))
    if not segments:
        return None
    return join_path(segments), len(segments), segments[-1]


def find_column(columns: Iterable[str], *candidates: str) -> Optional[str]:
    """Actual header matching any candidate, compared trimmed and case-insensitively."""
    lookup = {str(c).strip().lower(): c for c in columns}
    for candidate in candidates:
        if candidate in lookup:
            return lookup[candidate]
    return None


def build_category(
    client_id: UUID,
    row: Dict[str, Any],
    breadcrumbs_key: str,
    industry_key: Optional[str] = None,
    source: Optional[str] = None,
    row_index: Optional[int] = None,
) -> Optional[Category]:
    """Category for one input row, None when the row has no breadcrumb."""
    parsed = parse_breadcrumb(row.get(breadcrumbs_key))
    if parsed is None:
        return None
    path, level, name = parsed
    if level > MAX_LEVELS:
        raise ValueError(f"Breadcrumb has {level} levels, at most {MAX_LEVELS} are supported")

    extra: Dict[str, Any] = {}
    industry = _clean(row.get(industry_key)) if industry_key else ""
    if industry:
        extra["industry"] = industry
    if source:
        extra["source"] = source
    if row_index is not None:
        extra["row_index"] = row_index

    return Category(
        id=uuid.uuid4(),
        client_id=client_id,
        category_path=path,
        level=level,
        name=name,
        extra=extra,
        is_visible=True,
    )


class CategoryFileParser:
    """Reads uploaded taxonomy files with pandas."""

    def __init__(self, upload_dir: str = settings.UPLOAD_DIR):
        self.upload_dir = upload_dir

    def save_uploaded_file(self, filename: str, content: bytes) -> str:
        """Save an upload under a unique name and return the path."""
        if not filename.lower().endswith(ALLOWED_EXTENSIONS):
            raise ValidationError("Invalid file type. Please upload a .csv or .txt file.")
        os.makedirs(self.upload_dir, exist_ok=True)
        safe_filename = "".join(c for c in filename if c.isalnum() or c in "._-")
        file_path = os.path.join(self.upload_dir, f"{uuid.uuid4().hex[:8]}_{safe_filename}")

        with open(file_path, "wb") as f:
            f.write(content)

        logger.info("Saved uploaded category file", filename=filename, path=file_path)
        return file_path

    def read(self, file_path: str) -> pd.DataFrame:
        try:
            return pd.read_csv(file_path, dtype=str, keep_default_na=False, skip_blank_lines=True)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            logger.error("Failed to read category file", error=str(e), path=file_path)
            raise ValidationError(f"Failed to parse file: {e}") from e

    def check_headers(self, columns: Iterable[str]) -> Tuple[str, Optional[str]]:
        """(breadcrumbs column, industry column or None); requires breadcrumbs."""
        columns = list(columns)
        breadcrumbs = find_column(columns, BREADCRUMBS_COLUMN)
        if breadcrumbs is None:
            raise ValidationError(
                f"Missing required column: {BREADCRUMBS_COLUMN}. Found: {', '.join(map(str, columns))}"
            )
        return breadcrumbs, find_column(columns, *INDUSTRY_COLUMNS)

    def get_preview(self, file_path: str, num_rows: int = 10) -> Tuple[List[str], List[Dict[str, Any]], int]:
        """Columns, the first ``num_rows`` rows and the total row count."""
        df = self.read(file_path)
        if df.empty:
            raise ValidationError("The file is empty.")
        columns = [str(c) for c in df.columns]
        preview_rows = [
            {"row_number": idx + 1, "data": {str(k): _clean(v) for k, v in row.items()}}
            for idx, row in df.head(num_rows).iterrows()
        ]
        return columns, preview_rows, len(df)

    def iterate_rows(self, file_path: str) -> Iterator[Tuple[int, Dict[str, Any]]]:
        """(spreadsheet row number, row dict) pairs; row 1 is the header."""
        df = self.read(file_path)
        for idx, row in df.iterrows():
            yield idx + 2, row.to_dict()


category_file_parser = CategoryFileParser()


async def import_categories(
    db: AsyncSession,
    client_id: UUID,
    rows: Iterable[Dict[str, Any]],
    source: Optional[str] = None,
) -> ImportResult:
    """Insert rows one at a time; a failing row is counted and the batch continues."""
    rows = list(rows)
    if not rows:
        return ImportResult()
    breadcrumbs_key, industry_key = category_file_parser.check_headers(rows[0].keys())

    result = ImportResult()
    for index, row in enumerate(rows, start=2):
        try:
            category = build_category(client_id, row, breadcrumbs_key, industry_key, source, index)
            if category is None:
                result.skipped += 1
                continue
            db.add(category)
            await db.commit()
            result.imported += 1
        except Exception as e:
            await db.rollback()
            logger.warning("Failed to import category row", row=index, error=str(e))
            result.failed += 1

    logger.info("Categories imported", client_id=str(client_id), **result.to_dict())
    return result


def import_categories_sync(
    db: Session,
    client_id: UUID,
    rows: Iterable[Tuple[int, Dict[str, Any]]],
    breadcrumbs_key: str,
    industry_key: Optional[str],
    source: Optional[str] = None,
) -> Iterator[ImportResult]:
    """Worker variant; yields the running counts after every row."""
    result = ImportResult()
    for row_index, row in rows:
        try:
            category = build_category(client_id, row, breadcrumbs_key, industry_key, source, row_index)
            if category is None:
                result.skipped += 1
            else:
                db.add(category)
                db.commit()
                result.imported += 1
        except Exception as e:
            db.rollback()
            logger.warning("Failed to import category row", row=row_index, error=str(e))
            result.failed += 1
        yield result


async def list_categories(
    db: AsyncSession,
    client_id: UUID,
    include_hidden: bool = False,
) -> List[Category]:
    query = select(Category).where(Category.client_id == client_id)
    if not include_hidden:
        query = query.where(Category.is_visible.is_(True))
    result = await db.execute(query.order_by(Category.category_path))
    return list(result.scalars().all())


async def create_category(
    db: AsyncSession,
    client_id: UUID,
    level: int,
    name: str,
    parent_path: str = "",
    industry: Optional[str] = None,
) -> Category:
    """Add a category by hand at ``level`` under the selected parent path."""
    name = (name or "").strip()
    if not name or ">" in name:
        raise ValidationError("Category name is required and cannot contain '>'.")
    if not 1 <= level <= MAX_LEVELS:
        raise ValidationError(f"Level must be between 1 and {MAX_LEVELS}.")

    parents = split_path(parent_path)
    if len(parents) != level - 1:
        raise ValidationError(f"Level {level} needs {level - 1} parent level(s) selected.")

    path = join_path(parents + [name])
    existing = await db.scalar(
        select(Category).where(Category.client_id == client_id, Category.category_path == path)
    )
    if existing:
        raise ValidationError(f"Category already exists: {path}")

    parent_id = None
    if parents:
        parent_id = await db.scalar(
            select(Category.id).where(
                Category.client_id == client_id,
                Category.category_path == join_path(parents),
            )
        )

    extra = {"source": "manual_entry"}
    if industry:
        extra["industry"] = industry.strip()
    category = Category(
        client_id=client_id,
        category_path=path,
        level=level,
        name=name,
        parent_id=parent_id,
        extra=extra,
        is_visible=True,
    )
    db.add(category)
    await db.commit()
    await db.refresh(category)
    logger.info("Category created", category_id=str(category.id), path=path)
    return category


async def set_visibility(
    db: AsyncSession,
    client_id: UUID,
    category_ids: Iterable,
    visible: bool,
) -> int:
    """Hide or unhide categories; returns how many rows changed."""
    ids = [UUID(str(c)) for c in category_ids]
    result = await db.execute(
        select(Category).where(Category.client_id == client_id, Category.id.in_(ids))
    )
    categories = result.scalars().all()
    if not categories:
        raise NotFoundError("Categories not found")

    changed = 0
    for category in categories:
        if category.is_visible != visible:
            category.is_visible = visible
            changed += 1
    await db.commit()
    logger.info("Category visibility changed", visible=visible, count=changed)
    return changed
