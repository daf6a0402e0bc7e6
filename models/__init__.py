"""
Models package for Plastic Clever Schools Evidence Review

This package contains all database models and related constants.
Models are declared per ``SQLAlchemy`` instance so that every application
built by ``create_app`` owns its own metadata.
"""

from .constants import EvidenceStatus, Stage, Visibility, ConsentStatus, UserRole, PROGRAM_STAGES


def init_models(database_instance):
    """Initialize models with the database instance from the main app"""
    from .user import create_user_models
    from .school import create_school_models
    from .requirement import create_requirement_model
    from .evidence import create_evidence_model
    from .activity import create_activity_models

    User, SchoolMember = create_user_models(database_instance)
    School, Certificate = create_school_models(database_instance)
    EvidenceRequirement = create_requirement_model(database_instance)
    Evidence = create_evidence_model(database_instance)
    Notification, AuditLog = create_activity_models(database_instance)

    return {
        'EvidenceStatus': EvidenceStatus,
        'Stage': Stage,
        'Visibility': Visibility,
        'ConsentStatus': ConsentStatus,
        'User': User,
        'SchoolMember': SchoolMember,
        'School': School,
        'Certificate': Certificate,
        'EvidenceRequirement': EvidenceRequirement,
        'Evidence': Evidence,
        'Notification': Notification,
        'AuditLog': AuditLog,
    }


__all__ = [
    'init_models',
    'EvidenceStatus',
    'Stage',
    'Visibility',
    'ConsentStatus',
    'UserRole',
    'PROGRAM_STAGES',
]
