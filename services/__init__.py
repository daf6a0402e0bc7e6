"""
Services package for Plastic Clever Schools Evidence Review

This package contains business logic services including:
- Evidence lifecycle (submit, list, edit, delete)
- Reviewer / requirement assignment with duplicate checks
- Single and bulk review
- School stage and round progression
- Photo consent gate
- Email notifications, audit log and file storage delegates

``build_services`` wires them together once per application.
"""

from dataclasses import dataclass

from .assignment import AssignmentGuard
from .audit import AuditLogService
from .consent import ConsentDecision, evaluate_photo_consent, check_school_consent
from .delegates import NotificationSender, FileStore, ProgressionTrigger
from .email import EmailNotificationSender
from .errors import ServiceError, ValidationError, PermissionDenied, NotFound, Conflict, InvalidState
from .lifecycle import EvidenceLifecycleManager
from .persistence import PersistenceGateway, EvidenceFilters, Page
from .progression import ProgressionEngine
from .review import ReviewEngine
from .storage import LocalFileStore


@dataclass
class ServiceContainer:
    gateway: PersistenceGateway
    notifications: NotificationSender
    files: FileStore
    audit: AuditLogService
    progression: ProgressionEngine
    lifecycle: EvidenceLifecycleManager
    assignment: AssignmentGuard
    review: ReviewEngine


def build_services(app, db, models, **overrides) -> ServiceContainer:
    """Construct every service for one app; delegates passed as keyword overrides replace the defaults"""
    gateway = overrides.get("gateway") or PersistenceGateway(db, models)
    notifications = overrides.get("notifications") or EmailNotificationSender(gateway)
    files = overrides.get("files") or LocalFileStore(app.config["UPLOAD_DIR"])
    audit = overrides.get("audit") or AuditLogService(gateway)

    progression = overrides.get("progression") or ProgressionEngine(gateway, notifications)
    lifecycle = EvidenceLifecycleManager(gateway, notifications, files, audit, progression)
    assignment = AssignmentGuard(gateway, notifications, audit, progression)
    review = ReviewEngine(gateway, notifications, audit, progression)

    return ServiceContainer(
        gateway=gateway,
        notifications=notifications,
        files=files,
        audit=audit,
        progression=progression,
        lifecycle=lifecycle,
        assignment=assignment,
        review=review,
    )


__all__ = [
    'ServiceContainer',
    'build_services',
    'PersistenceGateway',
    'EvidenceFilters',
    'Page',
    'NotificationSender',
    'FileStore',
    'ProgressionTrigger',
    'EmailNotificationSender',
    'LocalFileStore',
    'AuditLogService',
    'ProgressionEngine',
    'EvidenceLifecycleManager',
    'AssignmentGuard',
    'ReviewEngine',
    'ConsentDecision',
    'evaluate_photo_consent',
    'check_school_consent',
    'ServiceError',
    'ValidationError',
    'PermissionDenied',
    'NotFound',
    'Conflict',
    'InvalidState',
]
