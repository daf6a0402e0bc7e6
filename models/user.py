"""
User models for Plastic Clever Schools Evidence Review

This module contains the User model and the SchoolMember link table.
Accounts are created by the authentication layer; this service only reads
them to resolve roles, school membership and notification addresses.
"""

from datetime import datetime
from .constants import UserRole


def create_user_models(db):
    """Create and return User and SchoolMember model classes"""

    class User(db.Model):
        __tablename__ = "users"

        id = db.Column(db.Integer, primary_key=True)
        email = db.Column(db.String(320), unique=True, nullable=True)
        first_name = db.Column(db.String(120), nullable=True)
        last_name = db.Column(db.String(120), nullable=True)
        role = db.Column(db.String(32), default=UserRole.TEACHER, nullable=False)  # teacher | partner | admin
        is_admin = db.Column(db.Boolean, default=False, nullable=False)
        created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

        memberships = db.relationship("SchoolMember", backref="user", cascade="all, delete-orphan")

        @property
        def display_name(self) -> str:
            full = " ".join(p for p in (self.first_name, self.last_name) if p)
            return full or self.email or f"User {self.id}"

        @property
        def is_partner(self) -> bool:
            return self.role == UserRole.PARTNER

        def to_dict(self):
            return {
                "id": self.id,
                "email": self.email,
                "firstName": self.first_name,
                "lastName": self.last_name,
                "displayName": self.display_name,
                "role": self.role,
                "isAdmin": self.is_admin,
            }

    class SchoolMember(db.Model):
        __tablename__ = "school_members"
        __table_args__ = (
            db.UniqueConstraint("school_id", "user_id", name="uq_school_member"),
        )

        id = db.Column(db.Integer, primary_key=True)
        school_id = db.Column(
            db.Integer, db.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True
        )
        user_id = db.Column(
            db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
        )
        role = db.Column(db.String(32), default="teacher", nullable=False)  # head_teacher | teacher
        created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    return User, SchoolMember
