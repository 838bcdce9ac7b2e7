"""Candidate-related enums."""

from enum import Enum


class CandidateSource(str, Enum):
    """How a candidate entered the system."""

    MANUAL = "manual"
    IMPORT = "import"
    REFERRAL = "referral"
    OTHER = "other"


class DuplicateType(str, Enum):
    """Key a duplicate group was formed on."""

    EMAIL = "email"
    PHONE = "phone"
