from click.testing import CliRunner

from recruit_crm.cli import cli
from recruit_crm.db.models import Candidate, Pipeline, User


def test_seed_pipeline(db):
    result = CliRunner().invoke(cli, ["seed-pipeline", "--name", "Sales"])

    assert result.exit_code == 0, result.output
    assert "Inbox (default)" in result.output
    db.expire_all()
    pipeline = db.query(Pipeline).filter_by(name="Sales").one()
    assert [s.name for s in pipeline.stages][:2] == ["Inbox", "Screening"]


def test_create_user_rejects_duplicates(db):
    runner = CliRunner()
    args = ["create-user", "--email", "Ops@Acme.com", "--name", "Ops", "--role", "admin"]

    first = runner.invoke(cli, args)
    second = runner.invoke(cli, args)

    assert first.exit_code == 0, first.output
    assert second.exit_code != 0
    assert "already exists" in second.output
    db.expire_all()
    assert db.query(User).filter_by(email="ops@acme.com").one().role == "admin"


def test_find_duplicates(db, make_candidate):
    make_candidate(full_name="Jane Doe", email="jane@acme.io")
    make_candidate(full_name="Jane D.", email="jane@acme.io")

    result = CliRunner().invoke(cli, ["find-duplicates"])

    assert result.exit_code == 0, result.output
    assert "1 groups, 2 candidates involved" in result.output
    assert "[email] jane@acme.io" in result.output


def test_merge_candidates(db, make_candidate):
    target = make_candidate(full_name="Jane Doe")
    source = make_candidate(full_name="Jane D.")
    target_id, source_id = target.id, source.id

    result = CliRunner().invoke(cli, ["merge-candidates", str(target_id), str(source_id)])

    assert result.exit_code == 0, result.output
    db.expire_all()
    assert db.get(Candidate, source_id).merged_into_id == target_id


def test_merge_candidates_reports_service_errors(db, make_candidate):
    target = make_candidate(full_name="Jane Doe")

    result = CliRunner().invoke(cli, ["merge-candidates", str(target.id), str(target.id)])

    assert result.exit_code != 0
    assert "into itself" in result.output
