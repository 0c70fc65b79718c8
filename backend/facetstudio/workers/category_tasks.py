"""Celery tasks for category file imports."""

from uuid import UUID
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from facetstudio.core.celery_app import celery_app
from facetstudio.core.config import settings
from facetstudio.core.logging import get_logger
from facetstudio.models.category_import import CategoryImport, ImportStatus
from facetstudio.services.category_importer import category_file_parser, import_categories_sync

logger = get_logger(__name__)

# Sync engine for Celery workers
sync_engine = create_engine(
    settings.DATABASE_URL.replace("+asyncpg", "").replace("+aiosqlite", "")
)
SessionLocal = sessionmaker(bind=sync_engine)

PROGRESS_EVERY = 50


def get_db_session() -> Session:
    """Get a sync database session for Celery tasks."""
    return SessionLocal()


def run_category_import(db: Session, import_id: str, on_progress=None) -> dict:
    """Import every row of an uploaded file and record the counts."""
    category_import = db.get(CategoryImport, UUID(import_id))
    if not category_import:
        logger.error("Category import not found", import_id=import_id)
        return {"error": "Import not found"}

    try:
        category_import.status = ImportStatus.PROCESSING
        db.commit()

        df = category_file_parser.read(category_import.file_path)
        breadcrumbs_key, industry_key = category_file_parser.check_headers(df.columns)
        category_import.total_rows = len(df)
        db.commit()
        rows = ((idx + 2, row.to_dict()) for idx, row in df.iterrows())

        result = None
        for count, result in enumerate(
            import_categories_sync(
                db,
                category_import.client_id,
                rows,
                breadcrumbs_key,
                industry_key,
                source=category_import.filename,
            ),
            start=1,
        ):
            if count % PROGRESS_EVERY == 0:
                category_import.processed_rows = result.imported
                category_import.failed_rows = result.failed
                category_import.skipped_rows = result.skipped
                db.commit()
                if on_progress:
                    on_progress(result, category_import.total_rows)

        counts = result.to_dict() if result else {"imported": 0, "failed": 0, "skipped": 0}
        category_import.status = ImportStatus.COMPLETED
        category_import.processed_rows = counts["imported"]
        category_import.failed_rows = counts["failed"]
        category_import.skipped_rows = counts["skipped"]
        db.commit()

        logger.info("Category import completed", import_id=import_id, **counts)
        return {"status": "completed", **counts}

    except Exception as e:
        logger.error("Category import failed", import_id=import_id, error=str(e))
        db.rollback()
        category_import.status = ImportStatus.FAILED
        category_import.error_message = str(e)[:1000]
        db.commit()
        raise


@celery_app.task(bind=True, name="process_category_import")
def process_category_import(self, import_id: str):
    """Parse an uploaded breadcrumb file and insert its categories."""
    logger.info("Starting category import", import_id=import_id)

    def report(result, total):
        self.update_state(
            state="PROGRESS",
            meta={**result.to_dict(), "total": total},
        )

    db = get_db_session()
    try:
        return run_category_import(db, import_id, on_progress=report)
    finally:
        db.close()
