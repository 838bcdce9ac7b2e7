"""Candidate merge: ownership transfer, tag union, tombstones and audit."""
import uuid

import pytest
from sqlalchemy.exc import OperationalError

from recruit_crm.core.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
)
from recruit_crm.db.base import utcnow
from recruit_crm.db.enums import AuditEventType
from recruit_crm.db.models import (
    Attachment,
    AuditLog,
    Candidate,
    CandidateStageHistory,
    CandidateTag,
    EmailLog,
    MergeLog,
    Note,
    Tag,
)
from recruit_crm.services import audit_service, merge_service


@pytest.fixture
def tags(db):
    created = {name: Tag(name=name) for name in ("python", "senior", "remote")}
    db.add_all(created.values())
    db.commit()
    return created


def _tag(db, candidate, tag):
    db.add(CandidateTag(candidate_id=candidate.id, tag_id=tag.id))
    db.commit()


def _note(db, candidate, body="note"):
    db.add(Note(candidate_id=candidate.id, body=body))
    db.commit()


def _attachment(db, candidate, filename="cv.pdf"):
    db.add(
        Attachment(
            candidate_id=candidate.id,
            filename=filename,
            storage_key=f"attachments/{uuid.uuid4()}",
            content_type="application/pdf",
            file_size=10,
        )
    )
    db.commit()


def _email_log(db, candidate):
    db.add(
        EmailLog(
            candidate_id=candidate.id,
            recipient_email="jane@acme.io",
            subject="Interview",
        )
    )
    db.commit()


def _count(db, model, candidate):
    return db.query(model).filter(model.candidate_id == candidate.id).count()


def test_merge_moves_children_to_target(db, admin_user, default_stage, make_candidate, tags):
    target = make_candidate(full_name="Jane Doe", email="jane@acme.io")
    source = make_candidate(full_name="J. Doe")
    _note(db, target)
    _note(db, source, "first")
    _note(db, source, "second")
    _attachment(db, source)
    _email_log(db, source)
    db.add(CandidateStageHistory(candidate_id=source.id, to_stage_id=default_stage.id))
    db.commit()

    result = merge_service.merge_candidates(db, target.id, [source.id], actor_user_id=admin_user.id)

    assert result.merged_source_ids == [source.id]
    assert result.moved == {"notes": 2, "attachments": 1, "email_logs": 1, "stage_history": 1}
    assert _count(db, Note, target) == 3
    assert _count(db, Note, source) == 0
    assert _count(db, Attachment, target) == 1
    assert _count(db, EmailLog, target) == 1
    assert _count(db, CandidateStageHistory, target) == 1

    db.refresh(source)
    assert source.merged_into_id == target.id
    assert source.is_active is False
    assert db.query(Candidate).filter(Candidate.is_active).all() == [target]

    log = db.query(MergeLog).one()
    assert (log.target_candidate_id, log.source_candidate_id) == (target.id, source.id)
    assert log.merged_by_user_id == admin_user.id


def test_merge_unions_tags_without_duplicates(db, admin_user, make_candidate, tags):
    target = make_candidate(full_name="Target")
    first = make_candidate(full_name="First")
    second = make_candidate(full_name="Second")
    _tag(db, target, tags["python"])
    _tag(db, first, tags["python"])
    _tag(db, first, tags["senior"])
    _tag(db, second, tags["senior"])
    _tag(db, second, tags["remote"])

    result = merge_service.merge_candidates(
        db, target.id, [first.id, second.id], actor_user_id=admin_user.id
    )

    assert result.tags_added == 2
    target_tag_ids = {
        tag_id for (tag_id,) in db.query(CandidateTag.tag_id).filter_by(candidate_id=target.id)
    }
    assert target_tag_ids == {t.id for t in tags.values()}
    assert _count(db, CandidateTag, target) == 3
    assert db.query(MergeLog).count() == 2


def test_merge_backfills_empty_target_fields(db, admin_user, make_candidate):
    target = make_candidate(full_name="Jane Doe", email="jane@acme.io")
    source = make_candidate(
        full_name="Jane",
        email="other@acme.io",
        phone_e164="+32470123456",
        extracted_text="CV text",
        parsing_confidence=60,
    )

    merge_service.merge_candidates(db, target.id, [source.id], actor_user_id=admin_user.id)

    db.refresh(target)
    assert target.full_name == "Jane Doe"
    assert target.email == "jane@acme.io"
    assert target.phone_e164 == "+32470123456"
    assert target.extracted_text == "CV text"
    assert target.parsing_confidence == 60


def test_backfill_takes_first_source_with_a_value(db, admin_user, make_candidate):
    target = make_candidate(full_name="Target")
    empty = make_candidate(full_name="Empty")
    first = make_candidate(full_name="First", phone_e164="+32470000001")
    second = make_candidate(full_name="Second", phone_e164="+32470000002")

    merge_service.merge_candidates(
        db, target.id, [empty.id, first.id, second.id], actor_user_id=admin_user.id
    )

    db.refresh(target)
    assert target.phone_e164 == "+32470000001"


def test_overrides_win_over_backfill(db, admin_user, make_candidate):
    target = make_candidate(full_name="Jane Doe")
    source = make_candidate(full_name="Jane", email="source@acme.io", phone_e164="+32470123456")

    result = merge_service.merge_candidates(
        db,
        target.id,
        [source.id],
        actor_user_id=admin_user.id,
        field_overrides={"full_name": "  Jane   Smith ", "email": "Chosen@Acme.io", "phone_e164": None},
    )

    db.refresh(target)
    assert target.full_name == "Jane Smith"
    assert target.email == "chosen@acme.io"
    assert target.phone_e164 is None
    assert result.overridden_fields == ["email", "full_name", "phone_e164"]


def test_phone_override_is_normalized(db, admin_user, make_candidate):
    target = make_candidate(full_name="Target")
    source = make_candidate(full_name="Source")

    merge_service.merge_candidates(
        db,
        target.id,
        [source.id],
        actor_user_id=admin_user.id,
        field_overrides={"phone_e164": "0470 12 34 56"},
    )

    db.refresh(target)
    assert target.phone_e164 == "+32470123456"


@pytest.mark.parametrize(
    "overrides,field",
    [({"full_name": "   "}, "full_name"), ({"stage_id": "x"}, "stage_id")],
)
def test_invalid_overrides_are_rejected(db, admin_user, make_candidate, overrides, field):
    target = make_candidate(full_name="Target")
    source = make_candidate(full_name="Source")

    with pytest.raises(InvalidInputError) as exc_info:
        merge_service.merge_candidates(
            db, target.id, [source.id], actor_user_id=admin_user.id, field_overrides=overrides
        )

    assert exc_info.value.violations[0]["field"] == field
    db.refresh(source)
    assert source.merged_into_id is None


def test_merge_requires_sources(db, admin_user, make_candidate):
    target = make_candidate()
    with pytest.raises(InvalidInputError):
        merge_service.merge_candidates(db, target.id, [], actor_user_id=admin_user.id)


def test_self_merge_is_rejected(db, admin_user, make_candidate):
    target = make_candidate()
    other = make_candidate()
    with pytest.raises(ConflictError):
        merge_service.merge_candidates(
            db, target.id, [other.id, target.id], actor_user_id=admin_user.id
        )
    db.refresh(other)
    assert other.merged_into_id is None


def test_duplicate_source_ids_are_merged_once(db, admin_user, make_candidate):
    target = make_candidate()
    source = make_candidate()

    result = merge_service.merge_candidates(
        db, target.id, [source.id, source.id], actor_user_id=admin_user.id
    )

    assert result.merged_source_ids == [source.id]
    assert db.query(MergeLog).count() == 1


def test_missing_candidates_are_not_found(db, admin_user, make_candidate):
    target = make_candidate()
    deleted = make_candidate(deleted_at=utcnow())

    with pytest.raises(NotFoundError):
        merge_service.merge_candidates(db, uuid.uuid4(), [target.id], actor_user_id=admin_user.id)
    with pytest.raises(NotFoundError):
        merge_service.merge_candidates(db, target.id, [uuid.uuid4()], actor_user_id=admin_user.id)
    with pytest.raises(NotFoundError):
        merge_service.merge_candidates(db, target.id, [deleted.id], actor_user_id=admin_user.id)


def test_second_merge_of_same_source_is_rejected(db, admin_user, make_candidate):
    target = make_candidate()
    source = make_candidate()
    _note(db, source)
    merge_service.merge_candidates(db, target.id, [source.id], actor_user_id=admin_user.id)

    with pytest.raises(ConflictError):
        merge_service.merge_candidates(db, target.id, [source.id], actor_user_id=admin_user.id)

    assert db.query(MergeLog).count() == 1
    assert _count(db, Note, target) == 1


def test_merged_candidate_cannot_become_target(db, admin_user, make_candidate):
    target = make_candidate()
    source = make_candidate()
    other = make_candidate()
    merge_service.merge_candidates(db, target.id, [source.id], actor_user_id=admin_user.id)

    with pytest.raises(ConflictError):
        merge_service.merge_candidates(db, source.id, [other.id], actor_user_id=admin_user.id)

    db.refresh(other)
    assert other.merged_into_id is None


def test_merging_a_former_target_repoints_its_tombstones(db, admin_user, make_candidate):
    final = make_candidate(full_name="Jane Doe")
    middle = make_candidate(full_name="J. Doe")
    earliest = make_candidate(full_name="Jane D.")
    merge_service.merge_candidates(db, middle.id, [earliest.id], actor_user_id=admin_user.id)

    merge_service.merge_candidates(db, final.id, [middle.id], actor_user_id=admin_user.id)

    db.refresh(earliest)
    db.refresh(middle)
    db.refresh(final)
    assert middle.merged_into_id == final.id
    assert earliest.merged_into_id == final.id
    assert final.merged_into_id is None
    assert db.query(Candidate).filter(Candidate.merged_into_id == middle.id).count() == 0


def test_merge_writes_one_audit_event(db, admin_user, make_candidate):
    target = make_candidate()
    first = make_candidate()
    second = make_candidate()

    merge_service.merge_candidates(
        db, target.id, [first.id, second.id], actor_user_id=admin_user.id
    )

    entry = db.query(AuditLog).filter_by(event_type=AuditEventType.CANDIDATES_MERGED.value).one()
    assert entry.target_id == target.id
    assert entry.actor_user_id == admin_user.id
    assert entry.details["source_count"] == 2
    assert set(entry.details["source_ids"]) == {str(first.id), str(second.id)}


def test_database_failure_rolls_back_everything(db, admin_user, make_candidate, monkeypatch):
    target = make_candidate(full_name="Target")
    source = make_candidate(full_name="Source", phone_e164="+32470123456")
    _note(db, source)

    def failing_audit(*args, **kwargs):
        raise OperationalError("INSERT INTO audit_logs", {}, Exception("disk I/O error"))

    monkeypatch.setattr(audit_service, "log_candidates_merged", failing_audit)

    with pytest.raises(PersistenceError):
        merge_service.merge_candidates(db, target.id, [source.id], actor_user_id=admin_user.id)

    db.refresh(target)
    db.refresh(source)
    assert target.phone_e164 is None
    assert source.merged_into_id is None
    assert _count(db, Note, source) == 1
    assert db.query(MergeLog).count() == 0
