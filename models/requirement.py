"""
Evidence requirement model for Plastic Clever Schools Evidence Review
"""

from datetime import datetime


def create_requirement_model(db):
    """Create and return EvidenceRequirement model class"""

    class EvidenceRequirement(db.Model):
        __tablename__ = "evidence_requirements"

        id = db.Column(db.Integer, primary_key=True)
        title = db.Column(db.String(255), nullable=False)
        description = db.Column(db.Text, nullable=True)
        stage = db.Column(db.String(32), nullable=False, index=True)  # inspire | investigate | act
        order_index = db.Column(db.Integer, default=0, nullable=False)
        translations = db.Column(db.JSON, nullable=True)  # {"fr": {"title": ..., "description": ...}}
        created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
        updated_at = db.Column(
            db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
        )

        def to_dict(self):
            return {
                "id": self.id,
                "title": self.title,
                "description": self.description,
                "stage": self.stage,
                "orderIndex": self.order_index,
                "translations": self.translations or {},
            }

    return EvidenceRequirement
