"""
Activity models for Plastic Clever Schools Evidence Review

This module contains the in-app Notification model and the append-only
AuditLog model.
"""

from datetime import datetime


def create_activity_models(db):
    """Create and return Notification and AuditLog model classes"""

    class Notification(db.Model):
        __tablename__ = "notifications"

        id = db.Column(db.Integer, primary_key=True)
        user_id = db.Column(
            db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
        )
        kind = db.Column(db.String(64), nullable=False)  # evidence_assigned | ...
        title = db.Column(db.String(255), nullable=False)
        message = db.Column(db.Text, nullable=True)
        evidence_id = db.Column(db.Integer, db.ForeignKey("evidence.id", ondelete="SET NULL"), nullable=True)
        is_read = db.Column(db.Boolean, default=False, nullable=False)
        created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

        def to_dict(self):
            return {
                "id": self.id,
                "userId": self.user_id,
                "kind": self.kind,
                "title": self.title,
                "message": self.message,
                "evidenceId": self.evidence_id,
                "isRead": self.is_read,
                "createdAt": self.created_at.isoformat() if self.created_at else None,
            }

    class AuditLog(db.Model):
        __tablename__ = "audit_logs"

        id = db.Column(db.Integer, primary_key=True)
        actor_id = db.Column(db.Integer, nullable=True, index=True)
        action = db.Column(db.String(64), nullable=False, index=True)
        target_type = db.Column(db.String(64), nullable=True)
        target_id = db.Column(db.String(64), nullable=True, index=True)
        details = db.Column(db.JSON, nullable=True)
        created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    return Notification, AuditLog
