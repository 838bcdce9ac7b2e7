"""CLI tools for recruiting CRM operations."""

import logging
from uuid import UUID

import click

from recruit_crm.core.config import settings
from recruit_crm.core.exceptions import ServiceError
from recruit_crm.core.security import create_session_token
from recruit_crm.db.enums import Role
from recruit_crm.db.models import User
from recruit_crm.db.session import SessionLocal
from recruit_crm.services import (
    duplicate_service,
    import_service,
    merge_service,
    pipeline_service,
)


def _resolve_actor(db, email: str | None) -> UUID | None:
    if not email:
        return None
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user:
        raise click.ClickException(f"User {email} not found")
    return user.id


@click.group()
def cli():
    """Recruit CRM CLI tools."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--email", required=True, help="User email")
@click.option("--name", "display_name", required=True, help="Display name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.RECRUITER.value,
    show_default=True,
)
@click.option("--print-token", is_flag=True, help="Print a session token for API calls")
def create_user(email: str, display_name: str, role: str, print_token: bool):
    """
    Create a user (authentication itself is handled upstream).

    Example:
        recruit-crm create-user --email "ops@acme.com" --name "Ops" --role admin
    """
    db = SessionLocal()
    try:
        email = email.strip().lower()
        if db.query(User).filter(User.email == email).first():
            raise click.ClickException(f"User {email} already exists")
        user = User(email=email, display_name=display_name, role=role)
        db.add(user)
        db.commit()
        click.echo(f"✓ Created user {email} ({role})")
        click.echo(f"  ID: {user.id}")
        if print_token:
            click.echo(create_session_token(user.id, user.role, user.token_version))
    finally:
        db.close()


@cli.command()
@click.option("--name", default="Recruitment", show_default=True, help="Pipeline name")
def seed_pipeline(name: str):
    """
    Create a pipeline with the standard stages (Inbox is the default stage).

    Example:
        recruit-crm seed-pipeline --name "Engineering"
    """
    db = SessionLocal()
    try:
        pipeline = pipeline_service.create_pipeline(db, name=name)
        db.commit()
        click.echo(f"✓ Created pipeline: {name}")
        click.echo(f"  ID: {pipeline.id}")
        for stage in pipeline.stages:
            marker = " (default)" if stage.is_default else ""
            click.echo(f"  - {stage.order_index}: {stage.name}{marker}")
    finally:
        db.close()


@cli.command()
@click.argument("batch_id", type=click.UUID)
@click.option("--actor-email", default=None, help="User to attribute the import to")
def process_import(batch_id: UUID, actor_email: str | None):
    """
    Process a pending import batch.

    Example:
        recruit-crm process-import 6f1c... --actor-email "ops@acme.com"
    """
    db = SessionLocal()
    try:
        actor_id = _resolve_actor(db, actor_email)
        batch = import_service.process_batch(db, batch_id, actor_user_id=actor_id)
        click.echo(f"✓ Batch {batch.id}: {batch.status}")
        click.echo(
            f"  processed={batch.processed_count} "
            f"succeeded={batch.success_count} failed={batch.failed_count}"
        )
        for item in batch.items:
            if item.error_message:
                click.echo(f"  ✗ {item.filename}: {item.error_message}")
    except ServiceError as e:
        raise click.ClickException(e.message)
    finally:
        db.close()


@cli.command()
@click.option("--pipeline-id", type=click.UUID, default=None, help="Limit to one pipeline")
def find_duplicates(pipeline_id: UUID | None):
    """List duplicate candidate groups."""
    db = SessionLocal()
    try:
        report = duplicate_service.find_duplicates(db, pipeline_id=pipeline_id)
        click.echo(
            f"{report.total_groups} groups, {report.total_candidates} candidates involved"
        )
        for group in report.groups:
            click.echo(f"[{group.type.value}] {group.value}")
            for candidate in group.candidates:
                click.echo(f"  {candidate.id}  {candidate.full_name}  ({candidate.created_at:%Y-%m-%d})")
    finally:
        db.close()


@cli.command()
@click.argument("target_id", type=click.UUID)
@click.argument("source_ids", type=click.UUID, nargs=-1, required=True)
@click.option("--actor-email", default=None, help="User to attribute the merge to")
def merge_candidates(target_id: UUID, source_ids: tuple[UUID, ...], actor_email: str | None):
    """
    Merge source candidates into a target candidate.

    Example:
        recruit-crm merge-candidates <target_id> <source_id> [<source_id> ...]
    """
    db = SessionLocal()
    try:
        actor_id = _resolve_actor(db, actor_email)
        result = merge_service.merge_candidates(
            db,
            target_id=target_id,
            source_ids=list(source_ids),
            actor_user_id=actor_id,
        )
        click.echo(f"✓ Merged {len(result.merged_source_ids)} candidates into {target_id}")
        for label, count in result.moved.items():
            click.echo(f"  {label}: {count} moved")
        click.echo(f"  tags: {result.tags_added} added")
    except ServiceError as e:
        raise click.ClickException(e.message)
    finally:
        db.close()


if __name__ == "__main__":
    cli()
