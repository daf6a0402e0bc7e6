"""
Delegate interfaces for Plastic Clever Schools Evidence Review

The review and progression engines only talk to these capability
interfaces. Concrete implementations are injected once at application
start (``services.build_services``); tests substitute in-memory fakes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from flask import current_app


def best_effort(label: str, func, *args, **kwargs) -> bool:
    """Call a delegate method after the primary change is committed; a failure is logged, never raised"""
    try:
        return bool(func(*args, **kwargs))
    except Exception as e:
        current_app.logger.error(f"{label} failed: {e}")
        return False


@dataclass(frozen=True)
class ProgressionTrigger:
    """What initiated a progression check, for logging"""
    reason: str = "manual_admin"  # evidence_approved | evidence_updated | requirement_assigned | bonus_toggled | admin_upload | manual_admin
    evidence_id: Optional[int] = None

    def describe(self) -> str:
        if self.evidence_id is not None:
            return f"{self.reason} (evidence {self.evidence_id})"
        return self.reason


class NotificationSender(ABC):
    """Email and in-app notifications. Implementations never raise; they return whether the message went out."""

    @abstractmethod
    def send_submission_confirmation(self, evidence, recipient_email) -> bool:
        ...

    @abstractmethod
    def send_approval_notice(self, evidence, recipient_email, reviewer_name) -> bool:
        ...

    @abstractmethod
    def send_rejection_notice(self, evidence, recipient_email, reviewer_name, notes) -> bool:
        ...

    @abstractmethod
    def notify_assignee(self, user_id, evidence) -> bool:
        ...

    @abstractmethod
    def tag_submission_automation(self, user, school, evidence) -> bool:
        ...

    @abstractmethod
    def send_stage_completion(self, school, stage, round_number, recipient_email) -> bool:
        ...

    @abstractmethod
    def send_round_completion(self, school, round_number, certificate, recipient_email) -> bool:
        ...


class FileStore(ABC):
    """Object storage for evidence files"""

    @abstractmethod
    def upload_file(self, data: bytes, mime_type: str, filename: str, owner_id, visibility: str) -> str:
        ...

    @abstractmethod
    def delete_file(self, url: str) -> bool:
        ...
