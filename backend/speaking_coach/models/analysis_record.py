"""Analysis record model: one cached feedback per (owner, video, analysis type)."""

import uuid

from sqlalchemy import JSON, Column, DateTime, Index, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from speaking_coach.database import Base


class AnalysisRecord(Base):
    """Persisted feedback for one analysis type of one video.

    Written once per successful run and never updated. The raw provider
    payload is stored alongside so other analysis types of the same video
    can reuse it.
    """

    __tablename__ = "analysis_records"
    __table_args__ = (
        UniqueConstraint(
            "owner_id",
            "video_ref",
            "analysis_type",
            name="uq_analysis_records_owner_video_type",
        ),
        Index("ix_analysis_records_owner_video", "owner_id", "video_ref"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String, nullable=False)
    video_ref = Column(String, nullable=False)
    analysis_type = Column(String, nullable=False)
    feedback_text = Column(Text, nullable=False)
    raw_analysis = Column(JSON(none_as_null=True), nullable=True)
    analysis_source = Column(String, nullable=False, default="model_direct")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return (
            f"<AnalysisRecord id={self.id} owner={self.owner_id} "
            f"video={self.video_ref} type={self.analysis_type}>"
        )
