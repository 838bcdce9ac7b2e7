"""Pipeline and stage lookups used by import, plus default pipeline seeding."""

from uuid import UUID

from sqlalchemy.orm import Session

from recruit_crm.core.exceptions import InvalidInputError
from recruit_crm.db.models import Pipeline, PipelineStage


DEFAULT_STAGE_DEFS = [
    {"name": "Inbox", "color": "#6B7280", "is_default": True},
    {"name": "Screening", "color": "#3B82F6", "is_default": False},
    {"name": "Interview", "color": "#8B5CF6", "is_default": False},
    {"name": "Offer", "color": "#F59E0B", "is_default": False},
    {"name": "Hired", "color": "#10B981", "is_default": False},
    {"name": "Rejected", "color": "#EF4444", "is_default": False},
]


def get_pipeline(db: Session, pipeline_id: UUID) -> Pipeline | None:
    """Get pipeline by ID."""
    return db.get(Pipeline, pipeline_id)


def get_stages(db: Session, pipeline_id: UUID) -> list[PipelineStage]:
    """Stages of a pipeline ordered by order_index."""
    return (
        db.query(PipelineStage)
        .filter(PipelineStage.pipeline_id == pipeline_id)
        .order_by(PipelineStage.order_index)
        .all()
    )


def get_default_stage(db: Session, pipeline_id: UUID) -> PipelineStage:
    """
    Stage new candidates land on: the flagged default stage, else the
    lowest-order stage.

    Raises:
        InvalidInputError: pipeline has no stages
    """
    stage = (
        db.query(PipelineStage)
        .filter(
            PipelineStage.pipeline_id == pipeline_id,
            PipelineStage.is_default.is_(True),
        )
        .order_by(PipelineStage.order_index)
        .first()
    )
    if stage:
        return stage

    stages = get_stages(db, pipeline_id)
    if not stages:
        raise InvalidInputError(
            "Pipeline has no stages",
            violations=[{"field": "pipeline_id", "message": "Pipeline has no stages"}],
        )
    return stages[0]


def create_pipeline(
    db: Session,
    name: str,
    description: str | None = None,
    stage_defs: list[dict] | None = None,
) -> Pipeline:
    """Create a pipeline with its stages (defaults to the standard recruiting stages)."""
    pipeline = Pipeline(name=name, description=description)
    db.add(pipeline)
    db.flush()

    db.add_all([
        PipelineStage(
            pipeline_id=pipeline.id,
            name=stage["name"],
            color=stage.get("color", "#6B7280"),
            order_index=index,
            is_default=stage.get("is_default", False),
        )
        for index, stage in enumerate(stage_defs or DEFAULT_STAGE_DEFS)
    ])
    db.flush()
    return pipeline
