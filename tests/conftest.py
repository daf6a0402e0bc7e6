import pathlib
import sys
from types import SimpleNamespace

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app import create_app
from config import TestingConfig
from models.constants import Stage, UserRole, ConsentStatus
from services.delegates import NotificationSender, FileStore


class FakeNotifications(NotificationSender):
    """Records every call; set ``fail`` to make each call raise"""

    def __init__(self):
        self.calls = []
        self.fail = False

    def _record(self, name, *args):
        if self.fail:
            raise RuntimeError("mail server down")
        self.calls.append((name,) + args)
        return True

    def of(self, name):
        return [c for c in self.calls if c[0] == name]

    def send_submission_confirmation(self, evidence, recipient_email):
        return self._record("submission_confirmation", evidence.id, recipient_email)

    def send_approval_notice(self, evidence, recipient_email, reviewer_name):
        return self._record("approval_notice", evidence.id, recipient_email, reviewer_name)

    def send_rejection_notice(self, evidence, recipient_email, reviewer_name, notes):
        return self._record("rejection_notice", evidence.id, recipient_email, reviewer_name, notes)

    def notify_assignee(self, user_id, evidence):
        return self._record("notify_assignee", user_id, evidence.id)

    def tag_submission_automation(self, user, school, evidence):
        return self._record("submission_automation", user.id, school.id, evidence.id)

    def send_stage_completion(self, school, stage, round_number, recipient_email):
        return self._record("stage_completion", school.id, stage, round_number, recipient_email)

    def send_round_completion(self, school, round_number, certificate, recipient_email):
        return self._record("round_completion", school.id, round_number,
                            certificate.id if certificate else None, recipient_email)


class FakeFileStore(FileStore):
    def __init__(self):
        self.files = {}
        self.deleted = []

    def upload_file(self, data, mime_type, filename, owner_id, visibility):
        url = f"/uploads/{visibility}/{owner_id}/{filename}"
        self.files[url] = data
        return url

    def delete_file(self, url):
        self.deleted.append(url)
        return self.files.pop(url, None) is not None


@pytest.fixture
def notifications():
    return FakeNotifications()


@pytest.fixture
def file_store():
    return FakeFileStore()


@pytest.fixture
def app(tmp_path, notifications, file_store):
    class _Config(TestingConfig):
        UPLOAD_DIR = str(tmp_path / "uploads")

    app = create_app(_Config, notifications=notifications, files=file_store)
    with app.app_context():
        app.db.create_all()
        yield app
        app.db.session.remove()
        app.db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.services


@pytest.fixture
def seed(app):
    """Two schools, one teacher per school, an admin, a partner and one requirement per stage"""
    db = app.db
    m = app.models

    admin = m["User"](email="admin@example.org", first_name="Ada", last_name="Admin",
                      role=UserRole.ADMIN, is_admin=True)
    second_admin = m["User"](email="reviewer@example.org", first_name="Rita", last_name="Reviewer",
                             role=UserRole.ADMIN, is_admin=True)
    teacher = m["User"](email="teacher@example.org", first_name="Tom", last_name="Teacher")
    outsider = m["User"](email="outsider@example.org", first_name="Olga", last_name="Other")
    partner = m["User"](email="partner@example.org", first_name="Pat", last_name="Partner",
                        role=UserRole.PARTNER)
    db.session.add_all([admin, second_admin, teacher, outsider, partner])
    db.session.flush()

    school = m["School"](name="Seaside Primary", country="United Kingdom",
                         photo_consent_status=ConsentStatus.APPROVED, primary_contact_id=teacher.id)
    other_school = m["School"](name="Hillside Academy", country="Ireland", primary_contact_id=outsider.id)
    db.session.add_all([school, other_school])
    db.session.flush()

    db.session.add_all([
        m["SchoolMember"](school_id=school.id, user_id=teacher.id, role="head_teacher"),
        m["SchoolMember"](school_id=other_school.id, user_id=outsider.id, role="head_teacher"),
    ])

    inspire = m["EvidenceRequirement"](title="Plastic clever assembly", stage=Stage.INSPIRE, order_index=1)
    investigate = m["EvidenceRequirement"](title="Plastic waste audit", stage=Stage.INVESTIGATE, order_index=1)
    act = m["EvidenceRequirement"](title="Plastic reduction campaign", stage=Stage.ACT, order_index=1)
    db.session.add_all([inspire, investigate, act])
    db.session.commit()

    return SimpleNamespace(
        admin=admin.id,
        second_admin=second_admin.id,
        teacher=teacher.id,
        outsider=outsider.id,
        partner=partner.id,
        school=school.id,
        other_school=other_school.id,
        inspire=inspire.id,
        investigate=investigate.id,
        act=act.id,
    )


@pytest.fixture
def make_evidence(app, seed):
    """Insert evidence directly, bypassing the submission workflow"""
    def _make(school_id=None, requirement_id=None, status="pending", round_number=1,
              submitted_by=None, is_bonus=False, title="Litter pick", files=None):
        m = app.models
        requirement = app.db.session.get(m["EvidenceRequirement"], requirement_id) if requirement_id else None
        evidence = m["Evidence"](
            school_id=school_id or seed.school,
            submitted_by=submitted_by or seed.teacher,
            evidence_requirement_id=requirement_id,
            is_bonus=is_bonus,
            title=title,
            stage=requirement.stage if requirement else (Stage.ABOVE_AND_BEYOND if is_bonus else Stage.INSPIRE),
            status=status,
            round_number=round_number,
            files=files or [],
        )
        app.db.session.add(evidence)
        app.db.session.commit()
        return evidence.id
    return _make


@pytest.fixture
def login(client):
    """Put a user id in the test client's session"""
    def _login(user_id):
        with client.session_transaction() as sess:
            sess["user_id"] = user_id
    return _login
