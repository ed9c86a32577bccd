"""
Persistence of analysis records.

Each operation opens its own short session. Uniqueness of
(owner, video, analysis type) is enforced by the database; a duplicate
insert surfaces as RecordConflictError so callers can re-read the
winning record instead of failing.
"""

import logging
import time

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from speaking_coach.logging_config import PERF_LOGGER_NAME
from speaking_coach.models.analysis_record import AnalysisRecord
from speaking_coach.models.schemas import AnalysisSource, AnalysisType

logger = logging.getLogger(__name__)
perf_logger = logging.getLogger(PERF_LOGGER_NAME)


class AnalysisStoreError(Exception):
    """Database failure while reading or writing analysis records."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(f"Database error: {message}")


class RecordConflictError(AnalysisStoreError):
    """A record for the same (owner, video, analysis type) already exists."""

    pass


class AnalysisStore:
    """
    Read-through cache of analysis records backed by SQLAlchemy.

    Example:
        store = AnalysisStore(session_maker)
        record = await store.find_cached("user-1", "talk.mp4", AnalysisType.ACTION_FIXES)
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def find_cached(
        self,
        owner_id: str,
        video_ref: str,
        analysis_type: AnalysisType,
    ) -> AnalysisRecord | None:
        """
        Look up the record for an exact (owner, video, type) key.

        Returns:
            Stored record or None

        Raises:
            AnalysisStoreError: On database failure
        """
        query = select(AnalysisRecord).where(
            AnalysisRecord.owner_id == owner_id,
            AnalysisRecord.video_ref == video_ref,
            AnalysisRecord.analysis_type == analysis_type.value,
        )
        try:
            async with self.session_maker() as session:
                result = await session.execute(query)
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Cache lookup failed for {owner_id}/{video_ref}: {e}")
            raise AnalysisStoreError("cache lookup failed", cause=e) from e

    async def find_any_raw_payload(self, owner_id: str, video_ref: str) -> dict | None:
        """
        Find a stored raw payload for the video, whatever its analysis type.

        Returns:
            Earliest stored payload or None

        Raises:
            AnalysisStoreError: On database failure
        """
        query = (
            select(AnalysisRecord.raw_analysis)
            .where(
                AnalysisRecord.owner_id == owner_id,
                AnalysisRecord.video_ref == video_ref,
                AnalysisRecord.raw_analysis.is_not(None),
            )
            .order_by(AnalysisRecord.created_at)
            .limit(1)
        )
        try:
            async with self.session_maker() as session:
                result = await session.execute(query)
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Payload lookup failed for {owner_id}/{video_ref}: {e}")
            raise AnalysisStoreError("payload lookup failed", cause=e) from e

    async def insert(
        self,
        owner_id: str,
        video_ref: str,
        analysis_type: AnalysisType,
        feedback_text: str,
        analysis_source: AnalysisSource,
        raw_analysis: dict | None = None,
    ) -> AnalysisRecord:
        """
        Persist a new analysis record.

        Returns:
            Stored record with id and created_at populated

        Raises:
            RecordConflictError: Record for the same key already exists
            AnalysisStoreError: Any other database failure
        """
        record = AnalysisRecord(
            owner_id=owner_id,
            video_ref=video_ref,
            analysis_type=analysis_type.value,
            feedback_text=feedback_text,
            raw_analysis=raw_analysis,
            analysis_source=analysis_source.value,
        )

        start_time = time.time()
        try:
            async with self.session_maker() as session:
                session.add(record)
                await session.commit()
                await session.refresh(record)
        except IntegrityError as e:
            logger.info(
                f"Record already exists for {owner_id}/{video_ref}/{analysis_type.value}"
            )
            raise RecordConflictError("duplicate analysis record", cause=e) from e
        except SQLAlchemyError as e:
            logger.error(f"Insert failed for {owner_id}/{video_ref}: {e}")
            raise AnalysisStoreError("insert failed", cause=e) from e

        elapsed = time.time() - start_time
        perf_logger.info(
            f"PERF | db_insert | type={analysis_type.value} | "
            f"chars={len(feedback_text)} | time={elapsed * 1000:.0f}ms"
        )
        logger.info(f"Stored analysis record {record.id} ({analysis_type.value})")
        return record
