"""
Evidence model for Plastic Clever Schools Evidence Review

This module contains the Evidence model submitted by schools against
program stages and (optionally) a specific evidence requirement.
"""

from datetime import datetime
from sqlalchemy.orm import validates
from .constants import EvidenceStatus, Visibility


def create_evidence_model(db):
    """Create and return Evidence model class"""

    class Evidence(db.Model):
        __tablename__ = "evidence"
        __table_args__ = (
            # 加分证据不能挂在任何要求上
            db.CheckConstraint(
                "NOT (is_bonus AND evidence_requirement_id IS NOT NULL)",
                name="ck_evidence_bonus_requirement_exclusive",
            ),
            db.Index("idx_evidence_school_requirement_round", "school_id", "evidence_requirement_id", "round_number"),
        )

        id = db.Column(db.Integer, primary_key=True)
        school_id = db.Column(
            db.Integer, db.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True
        )
        submitted_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
        assigned_to = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
        evidence_requirement_id = db.Column(
            db.Integer, db.ForeignKey("evidence_requirements.id"), nullable=True, index=True
        )

        title = db.Column(db.String(255), nullable=False)
        description = db.Column(db.Text, nullable=True)
        stage = db.Column(db.String(32), nullable=False)  # inspire | investigate | act | above_and_beyond
        status = db.Column(db.String(32), default=EvidenceStatus.PENDING, index=True, nullable=False)
        visibility = db.Column(db.String(16), default=Visibility.PRIVATE, nullable=False)
        round_number = db.Column(db.Integer, default=1, nullable=False)
        is_bonus = db.Column(db.Boolean, default=False, nullable=False)

        files = db.Column(db.JSON, nullable=True)  # [{"name", "url", "mimeType", "size"}]
        video_links = db.Column(db.JSON, nullable=True)

        submitted_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
        updated_at = db.Column(
            db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
        )
        reviewed_at = db.Column(db.DateTime, nullable=True)
        reviewed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
        review_notes = db.Column(db.Text, nullable=True)

        school = db.relationship("School", backref=db.backref("evidence", lazy="dynamic"))
        requirement = db.relationship("EvidenceRequirement", backref=db.backref("evidence", lazy="dynamic"))
        submitter = db.relationship("User", foreign_keys=[submitted_by])
        reviewer = db.relationship("User", foreign_keys=[reviewed_by])
        assignee = db.relationship("User", foreign_keys=[assigned_to])

        @validates("is_bonus")
        def _validate_is_bonus(self, key, value):
            if value and self.evidence_requirement_id is not None:
                raise ValueError("Evidence linked to a requirement cannot be marked as bonus")
            return bool(value)

        @validates("evidence_requirement_id")
        def _validate_requirement(self, key, value):
            if value is not None and self.is_bonus:
                raise ValueError("Bonus evidence cannot be linked to a requirement")
            return value

        @property
        def is_homeless(self) -> bool:
            return self.evidence_requirement_id is None and not self.is_bonus

        @property
        def is_pending(self) -> bool:
            return self.status == EvidenceStatus.PENDING

        def to_dict(self):
            return {
                "id": self.id,
                "schoolId": self.school_id,
                "submittedBy": self.submitted_by,
                "assignedTo": self.assigned_to,
                "evidenceRequirementId": self.evidence_requirement_id,
                "title": self.title,
                "description": self.description,
                "stage": self.stage,
                "status": self.status,
                "visibility": self.visibility,
                "roundNumber": self.round_number,
                "isBonus": self.is_bonus,
                "files": self.files or [],
                "videoLinks": self.video_links or [],
                "submittedAt": self.submitted_at.isoformat() if self.submitted_at else None,
                "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
                "reviewedAt": self.reviewed_at.isoformat() if self.reviewed_at else None,
                "reviewedBy": self.reviewed_by,
                "reviewNotes": self.review_notes,
            }

    return Evidence
