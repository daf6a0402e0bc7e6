"""
Persistence gateway for Plastic Clever Schools Evidence Review

Narrow, typed access to evidence, requirement, school and user records.
No business rules live here: callers decide what a query result means.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, func, cast, String

from models.constants import EvidenceStatus, PROGRAM_STAGES


@dataclass
class EvidenceFilters:
    school_id: Optional[int] = None
    status: Optional[str] = None
    statuses: Optional[tuple] = None
    visibility: Optional[str] = None
    assigned_to: Optional[int] = None
    unassigned: bool = False
    requirement_id: Optional[int] = None
    homeless: bool = False
    round_number: Optional[int] = None
    stage: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None
    sort: str = "newest"
    page: int = 1
    limit: int = 20


@dataclass
class Page:
    items: list
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


class PersistenceGateway:
    def __init__(self, db, models: dict):
        self.db = db
        self.User = models['User']
        self.SchoolMember = models['SchoolMember']
        self.School = models['School']
        self.Certificate = models['Certificate']
        self.EvidenceRequirement = models['EvidenceRequirement']
        self.Evidence = models['Evidence']
        self.Notification = models['Notification']
        self.AuditLog = models['AuditLog']

    # -- unit of work -------------------------------------------------------

    @property
    def session(self):
        return self.db.session

    def add(self, obj):
        self.db.session.add(obj)
        return obj

    def delete(self, obj):
        self.db.session.delete(obj)

    def flush(self):
        self.db.session.flush()

    def commit(self):
        self.db.session.commit()

    def rollback(self):
        self.db.session.rollback()

    def refresh(self, obj):
        self.db.session.refresh(obj)
        return obj

    # -- users & schools ----------------------------------------------------

    def get_user(self, user_id):
        if user_id is None:
            return None
        return self.db.session.get(self.User, user_id)

    def get_school(self, school_id):
        if school_id is None:
            return None
        return self.db.session.get(self.School, school_id)

    def is_school_member(self, school_id, user_id) -> bool:
        if school_id is None or user_id is None:
            return False
        return self.SchoolMember.query.filter_by(school_id=school_id, user_id=user_id).first() is not None

    # -- evidence -----------------------------------------------------------

    def get_evidence(self, evidence_id):
        if evidence_id is None:
            return None
        return self.db.session.get(self.Evidence, evidence_id)

    def file_url_in_use(self, url, exclude_id=None) -> bool:
        """True if any other evidence still lists ``url`` among its files"""
        Evidence = self.Evidence
        q = Evidence.query.filter(cast(Evidence.files, String).contains(url, autoescape=True))
        if exclude_id is not None:
            q = q.filter(Evidence.id != exclude_id)
        for row in q.all():
            if any(isinstance(f, dict) and f.get("url") == url for f in (row.files or [])):
                return True
        return False

    def query_evidence(self, filters: EvidenceFilters) -> Page:
        Evidence = self.Evidence
        q = Evidence.query

        if filters.school_id is not None:
            q = q.filter(Evidence.school_id == filters.school_id)
        if filters.status:
            q = q.filter(Evidence.status == filters.status)
        if filters.statuses:
            q = q.filter(Evidence.status.in_(filters.statuses))
        if filters.visibility:
            q = q.filter(Evidence.visibility == filters.visibility)
        if filters.unassigned:
            q = q.filter(Evidence.assigned_to.is_(None))
        elif filters.assigned_to is not None:
            q = q.filter(Evidence.assigned_to == filters.assigned_to)
        if filters.homeless:
            q = q.filter(Evidence.evidence_requirement_id.is_(None), Evidence.is_bonus.is_(False))
        elif filters.requirement_id is not None:
            q = q.filter(Evidence.evidence_requirement_id == filters.requirement_id)
        if filters.round_number is not None:
            q = q.filter(Evidence.round_number == filters.round_number)
        if filters.stage:
            q = q.filter(Evidence.stage == filters.stage)
        if filters.date_from is not None:
            q = q.filter(Evidence.submitted_at >= filters.date_from)
        if filters.date_to is not None:
            q = q.filter(Evidence.submitted_at <= filters.date_to)

        keyword = (filters.search or "").strip()
        if keyword:
            like = f"%{keyword}%"
            q = q.filter(or_(Evidence.title.ilike(like), Evidence.description.ilike(like)))

        total = q.count()

        if filters.sort == "oldest":
            q = q.order_by(Evidence.submitted_at.asc(), Evidence.id.asc())
        elif filters.sort == "title":
            q = q.order_by(func.lower(Evidence.title).asc(), Evidence.id.asc())
        else:
            q = q.order_by(Evidence.submitted_at.desc(), Evidence.id.desc())

        page = max(1, filters.page)
        items = q.offset((page - 1) * filters.limit).limit(filters.limit).all()
        return Page(items=items, total=total, page=page, limit=filters.limit)

    def find_live_evidence_for_requirement(self, school_id, requirement_id, round_number, exclude_id=None):
        """First pending/approved evidence of a school against a requirement in one round"""
        Evidence = self.Evidence
        q = Evidence.query.filter(
            Evidence.school_id == school_id,
            Evidence.evidence_requirement_id == requirement_id,
            Evidence.round_number == round_number,
            Evidence.status.in_(tuple(EvidenceStatus.LIVE)),
        )
        if exclude_id is not None:
            q = q.filter(Evidence.id != exclude_id)
        return q.order_by(Evidence.submitted_at.asc(), Evidence.id.asc()).first()

    def satisfied_requirement_ids(self, school_id, round_number) -> set:
        Evidence = self.Evidence
        rows = (
            self.db.session.query(Evidence.evidence_requirement_id)
            .filter(
                Evidence.school_id == school_id,
                Evidence.round_number == round_number,
                Evidence.status == EvidenceStatus.APPROVED,
                Evidence.is_bonus.is_(False),
                Evidence.evidence_requirement_id.isnot(None),
            )
            .distinct()
            .all()
        )
        return {row[0] for row in rows}

    def approved_counts_by_stage(self, school_id, round_number) -> dict:
        Evidence = self.Evidence
        rows = (
            self.db.session.query(Evidence.stage, func.count(Evidence.id))
            .filter(
                Evidence.school_id == school_id,
                Evidence.round_number == round_number,
                Evidence.status == EvidenceStatus.APPROVED,
            )
            .group_by(Evidence.stage)
            .all()
        )
        counts = {stage: 0 for stage in PROGRAM_STAGES}
        counts.update({stage: count for stage, count in rows})
        return counts

    # -- requirements -------------------------------------------------------

    def get_requirement(self, requirement_id):
        if requirement_id is None:
            return None
        return self.db.session.get(self.EvidenceRequirement, requirement_id)

    def list_requirements(self, stage=None) -> list:
        Requirement = self.EvidenceRequirement
        q = Requirement.query
        if stage:
            q = q.filter(Requirement.stage == stage)
        items = q.order_by(Requirement.order_index.asc(), Requirement.id.asc()).all()
        stage_order = {s: i for i, s in enumerate(PROGRAM_STAGES)}
        return sorted(items, key=lambda r: stage_order.get(r.stage, len(stage_order)))

    def count_evidence_for_requirement(self, requirement_id) -> int:
        return self.Evidence.query.filter(self.Evidence.evidence_requirement_id == requirement_id).count()

    # -- certificates -------------------------------------------------------

    def get_certificate_for_round(self, school_id, round_number):
        return self.Certificate.query.filter_by(school_id=school_id, round_number=round_number).first()

    def list_certificates(self, school_id) -> list:
        return (
            self.Certificate.query.filter_by(school_id=school_id)
            .order_by(self.Certificate.round_number.asc())
            .all()
        )
