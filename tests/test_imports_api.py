"""HTTP surface of the CV import flow."""
import uuid

from recruit_crm.db.enums import ImportBatchStatus
from recruit_crm.db.models import Candidate, CandidateStageHistory
from recruit_crm.services import import_service


async def _create_batch(client, pipeline, **extra):
    response = await client.post("/imports", json={"pipeline_id": str(pipeline.id), **extra})
    assert response.status_code == 201, response.text
    return response.json()


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_requires_authentication(client, pipeline):
    response = await client.get("/imports")
    assert response.status_code == 401

    response = await client.post("/imports", json={"pipeline_id": str(pipeline.id)})
    assert response.status_code == 401


async def test_viewer_cannot_import(viewer_client, pipeline):
    response = await viewer_client.post("/imports", json={"pipeline_id": str(pipeline.id)})
    assert response.status_code == 403

    response = await viewer_client.get("/imports")
    assert response.status_code == 403


async def test_mutations_require_csrf_header(recruiter_client, pipeline):
    response = await recruiter_client.post(
        "/imports",
        json={"pipeline_id": str(pipeline.id)},
        headers={"X-Requested-With": "fetch"},
    )
    assert response.status_code == 403
    assert "CSRF" in response.json()["detail"]


async def test_create_batch_unknown_pipeline(recruiter_client):
    response = await recruiter_client.post("/imports", json={"pipeline_id": str(uuid.uuid4())})
    assert response.status_code == 404


async def test_create_batch_bad_country_code(recruiter_client, pipeline):
    response = await recruiter_client.post(
        "/imports", json={"pipeline_id": str(pipeline.id), "default_country_code": "1X"}
    )
    assert response.status_code == 400
    assert response.json()["detail"]["violations"][0]["field"] == "default_country_code"


async def test_pdf_import_end_to_end(db, recruiter_client, recruiter_user, pipeline, default_stage, pdf_factory):
    batch = await _create_batch(recruiter_client, pipeline)
    assert batch["status"] == ImportBatchStatus.PENDING.value

    pdf = pdf_factory(["John Smith", "john.smith@acme.com", "+32 470 12 34 56"])
    response = await recruiter_client.post(
        f"/imports/{batch['id']}/upload",
        files=[("files", ("john-smith.pdf", pdf, "application/pdf"))],
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["uploaded"] == 1
    assert body["failed"] == 0

    response = await recruiter_client.post(f"/imports/{batch['id']}/process")
    assert response.status_code == 200, response.text
    processed = response.json()
    assert processed["status"] == ImportBatchStatus.COMPLETED.value
    assert processed["total_files"] == 1
    assert processed["processed_count"] == 1
    assert processed["success_count"] == 1
    assert processed["failed_count"] == 0
    item = processed["items"][0]
    assert item["status"] == "succeeded"
    assert item["candidate"]["full_name"] == "John Smith"

    candidate = db.get(Candidate, uuid.UUID(item["candidate_id"]))
    assert candidate.email == "john.smith@acme.com"
    assert candidate.phone_e164 == "+32470123456"
    assert candidate.parsing_confidence == 100
    assert candidate.source == "import"
    assert candidate.stage_id == default_stage.id
    assert candidate.assigned_to_user_id == recruiter_user.id
    history = db.query(CandidateStageHistory).filter_by(candidate_id=candidate.id).all()
    assert len(history) == 1
    assert history[0].from_stage_id is None

    response = await recruiter_client.get(f"/imports/{batch['id']}")
    assert response.status_code == 200
    assert response.json()["success_count"] == 1


async def test_upload_reports_rejected_files(recruiter_client, pipeline):
    batch = await _create_batch(recruiter_client, pipeline)

    response = await recruiter_client.post(
        f"/imports/{batch['id']}/upload",
        files=[
            ("files", ("cv.txt", b"Jane Doe\njane@acme.io", "text/plain")),
            ("files", ("photo.png", b"\x89PNG", "image/png")),
        ],
    )

    assert response.status_code == 200
    body = response.json()
    assert (body["uploaded"], body["failed"]) == (1, 1)
    rejected = next(r for r in body["results"] if not r["success"])
    assert rejected["filename"] == "photo.png"
    assert rejected["error"] == "Invalid file type. Allowed: PDF, Word, TXT"


async def test_upload_to_unknown_batch(recruiter_client):
    response = await recruiter_client.post(
        f"/imports/{uuid.uuid4()}/upload",
        files=[("files", ("cv.txt", b"Jane Doe", "text/plain"))],
    )
    assert response.status_code == 404


async def test_process_twice_conflicts(recruiter_client, pipeline):
    batch = await _create_batch(recruiter_client, pipeline)
    await recruiter_client.post(
        f"/imports/{batch['id']}/upload",
        files=[("files", ("cv.txt", b"Jane Doe\njane@acme.io", "text/plain"))],
    )

    first = await recruiter_client.post(f"/imports/{batch['id']}/process")
    second = await recruiter_client.post(f"/imports/{batch['id']}/process")

    assert first.status_code == 200
    assert second.status_code == 409

    upload = await recruiter_client.post(
        f"/imports/{batch['id']}/upload",
        files=[("files", ("late.txt", b"John Smith", "text/plain"))],
    )
    assert upload.status_code == 409


async def test_process_without_files(recruiter_client, pipeline):
    batch = await _create_batch(recruiter_client, pipeline)

    response = await recruiter_client.post(f"/imports/{batch['id']}/process")

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "No queued files to process"


async def test_process_reports_pipeline_removed_mid_run(recruiter_client, pipeline, monkeypatch):
    batch = await _create_batch(recruiter_client, pipeline)
    await recruiter_client.post(
        f"/imports/{batch['id']}/upload",
        files=[("files", ("a.txt", b"Jane Doe", "text/plain"))],
    )
    monkeypatch.setattr(import_service.pipeline_service, "get_pipeline", lambda db, pid: None)

    response = await recruiter_client.post(f"/imports/{batch['id']}/process")

    assert response.status_code == 404
    assert response.json()["detail"] == f"Pipeline {pipeline.id} no longer exists"

    detail = await recruiter_client.get(f"/imports/{batch['id']}")
    assert detail.json()["status"] == ImportBatchStatus.FAILED.value


async def test_list_batches(recruiter_client, pipeline):
    created = await _create_batch(recruiter_client, pipeline)

    response = await recruiter_client.get("/imports", params={"pipeline_id": str(pipeline.id)})

    assert response.status_code == 200
    assert [b["id"] for b in response.json()["items"]] == [created["id"]]


async def test_delete_batch_requires_admin(recruiter_client, admin_client, pipeline):
    batch = await _create_batch(recruiter_client, pipeline)

    response = await recruiter_client.delete(f"/imports/{batch['id']}")
    assert response.status_code == 403

    response = await admin_client.delete(f"/imports/{batch['id']}")
    assert response.status_code == 204

    response = await admin_client.get(f"/imports/{batch['id']}")
    assert response.status_code == 404
