"""
School models for Plastic Clever Schools Evidence Review

This module contains the School model, whose stage/round state is owned by
the progression engine, and the Certificate issued on round completion.
"""

from datetime import datetime
from .constants import Stage


def create_school_models(db):
    """Create and return School and Certificate model classes"""

    class School(db.Model):
        __tablename__ = "schools"

        id = db.Column(db.Integer, primary_key=True)
        name = db.Column(db.String(255), nullable=False)
        country = db.Column(db.String(120), nullable=True)

        current_stage = db.Column(db.String(32), default=Stage.INSPIRE, nullable=False)
        current_round = db.Column(db.Integer, default=1, nullable=False)
        inspire_completed = db.Column(db.Boolean, default=False, nullable=False)
        investigate_completed = db.Column(db.Boolean, default=False, nullable=False)
        act_completed = db.Column(db.Boolean, default=False, nullable=False)
        rounds_completed = db.Column(db.Integer, default=0, nullable=False)
        progress_percentage = db.Column(db.Integer, default=0, nullable=False)

        photo_consent_status = db.Column(db.String(32), nullable=True)  # pending | approved | rejected | NULL
        photo_consent_document_url = db.Column(db.String(1024), nullable=True)

        primary_contact_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

        created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
        updated_at = db.Column(
            db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
        )

        members = db.relationship("SchoolMember", backref="school", cascade="all, delete-orphan")
        certificates = db.relationship(
            "Certificate", backref="school", cascade="all, delete-orphan", order_by="Certificate.round_number"
        )

        def stage_flags(self) -> dict:
            return {
                Stage.INSPIRE: bool(self.inspire_completed),
                Stage.INVESTIGATE: bool(self.investigate_completed),
                Stage.ACT: bool(self.act_completed),
            }

        def to_dict(self):
            return {
                "id": self.id,
                "name": self.name,
                "country": self.country,
                "currentStage": self.current_stage,
                "currentRound": self.current_round,
                "inspireCompleted": self.inspire_completed,
                "investigateCompleted": self.investigate_completed,
                "actCompleted": self.act_completed,
                "roundsCompleted": self.rounds_completed,
                "progressPercentage": self.progress_percentage,
                "photoConsentStatus": self.photo_consent_status,
            }

    class Certificate(db.Model):
        __tablename__ = "certificates"
        __table_args__ = (
            db.UniqueConstraint("school_id", "round_number", name="uq_certificate_school_round"),
        )

        id = db.Column(db.Integer, primary_key=True)
        school_id = db.Column(
            db.Integer, db.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True
        )
        round_number = db.Column(db.Integer, nullable=False)
        certificate_number = db.Column(db.String(128), unique=True, nullable=False)
        title = db.Column(db.String(255), nullable=False)
        description = db.Column(db.Text, nullable=True)
        details = db.Column(db.JSON, nullable=True)  # approved evidence counts per stage
        issued_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

        def to_dict(self):
            return {
                "id": self.id,
                "schoolId": self.school_id,
                "roundNumber": self.round_number,
                "certificateNumber": self.certificate_number,
                "title": self.title,
                "description": self.description,
                "details": self.details or {},
                "issuedAt": self.issued_at.isoformat() if self.issued_at else None,
            }

    return School, Certificate
