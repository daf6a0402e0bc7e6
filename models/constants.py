"""
Shared constants for Plastic Clever Schools Evidence Review
"""


class EvidenceStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    ALL = {PENDING, APPROVED, REJECTED}
    TERMINAL = {APPROVED, REJECTED}
    # Statuses that still count against a requirement in the current round
    LIVE = {PENDING, APPROVED}


class Stage:
    INSPIRE = "inspire"
    INVESTIGATE = "investigate"
    ACT = "act"
    ABOVE_AND_BEYOND = "above_and_beyond"

    ALL = {INSPIRE, INVESTIGATE, ACT, ABOVE_AND_BEYOND}


# Ordered program stages a school moves through every round
PROGRAM_STAGES = (Stage.INSPIRE, Stage.INVESTIGATE, Stage.ACT)


class Visibility:
    PUBLIC = "public"
    PRIVATE = "private"

    ALL = {PUBLIC, PRIVATE}


class ConsentStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    ALL = {PENDING, APPROVED, REJECTED}


class UserRole:
    TEACHER = "teacher"
    PARTNER = "partner"
    ADMIN = "admin"

    ALL = {TEACHER, PARTNER, ADMIN}
