"""
Photo consent gate for Plastic Clever Schools Evidence Review

Evaluated by callers before approving evidence. The gate never blocks for
good: when a school's photo consent is not fully approved it asks for an
explicit override, and evidence approved that way is not eligible for
public case-study reuse.
"""

from dataclasses import dataclass
from typing import Optional

from models.constants import ConsentStatus


class ConsentReason:
    NO_DOCUMENT = "no_document"
    PENDING_REVIEW = "pending_review"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ConsentDecision:
    allowed: bool
    requires_confirmation: bool = False
    reason_code: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "requiresConfirmation": self.requires_confirmation,
            "reasonCode": self.reason_code,
        }


ALLOW = ConsentDecision(allowed=True)


def evaluate_photo_consent(consent_status: Optional[str]) -> ConsentDecision:
    """Allow only when consent is exactly ``approved``; otherwise warn with a reason code"""
    if consent_status == ConsentStatus.APPROVED:
        return ALLOW
    if consent_status == ConsentStatus.PENDING:
        reason = ConsentReason.PENDING_REVIEW
    elif consent_status == ConsentStatus.REJECTED:
        reason = ConsentReason.REJECTED
    else:
        reason = ConsentReason.NO_DOCUMENT
    return ConsentDecision(allowed=False, requires_confirmation=True, reason_code=reason)


def check_school_consent(school) -> ConsentDecision:
    return evaluate_photo_consent(school.photo_consent_status if school is not None else None)
