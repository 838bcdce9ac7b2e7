"""Heuristic CV field extraction (name, email, phone) with confidence scoring.

Every field is optional: the heuristics are pattern matching, not ground
truth, and a missing name or email is an expected outcome. The extractor is
pluggable through the FieldExtractor protocol so a model-based extractor can
replace the heuristics without touching batch processing.

Phone patterns need an international prefix (+ or 00), a trunk 0, or an
area code in parentheses. A bare run of digits such as 555-123-4567 is only
taken after a phone label ("Phone:", "Tel", "Mobile"), which keeps year
ranges and other numbers in the CV body from being read as phone numbers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

from recruit_crm.core.config import settings
from recruit_crm.services import text_extraction

# Confidence weights (sum to 100)
NAME_WEIGHT = 40
EMAIL_WEIGHT = 40
PHONE_WEIGHT = 20

NAME_SCAN_LINES = 15
NAME_FALLBACK_SCAN_CHARS = 500
MIN_PHONE_DIGITS = 8
MAX_PHONE_DIGITS = 15

EMAIL_REGEX = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PLACEHOLDER_EMAIL_MARKERS = ("example", "test@", "@domain")

# Separators never span lines, so a number on one line cannot absorb the next.
_SEP = r"[ \t.\-/]"
PHONE_PATTERNS = [
    # +32 470 12 34 56, +1 (555) 123-4567
    re.compile(rf"\+\d{{1,3}}(?:{_SEP}?\(?\d{{1,4}}\)?){{2,6}}"),
    # 0032 470 12 34 56
    re.compile(rf"(?<![\d+])00\d{{1,3}}(?:{_SEP}?\(?\d{{1,4}}\)?){{2,6}}"),
    # 0470 12 34 56, (02) 123 45 67
    re.compile(rf"(?<![\d+])\(?0\d{{1,4}}\)?(?:{_SEP}?\d{{2,4}}){{2,5}}"),
    # (555) 123-4567
    re.compile(r"\(\d{3}\)[ \t]?\d{3}[ \t.\-]?\d{4}"),
    # Phone: 555-123-4567, Tel 470 12 34 56 (bare digit runs only after a label)
    re.compile(
        r"(?i:\b(?:phone|tel(?:ephone)?|mobile|mob|gsm|cell)\b)\.?[ \t]*[:\-]?[ \t]*"
        r"(?P<number>\+?\(?\d[\d \t.\-/()]{6,20}\d)"
    ),
]

_LETTER = r"A-Za-zÀ-ÖØ-öø-ÿ"
_NAME_WORD = re.compile(rf"^[{_LETTER}][{_LETTER}'\-]*$")
_CAPITALIZED_WORD = rf"[A-ZÀ-ÖØ-Þ][a-zß-öø-ÿ'\-]+"

NAME_SKIP_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^curriculum vitae$",
        r"^resume$",
        r"^résumé$",
        r"^cv$",
        r"^contact( details| information)?$",
        r"^personal (details|information)$",
        r"^about me$",
        r"^email$",
        r"^phone$",
        r"^address$",
        r"^(work |professional )?experience$",
        r"^education$",
        r"^skills$",
        r"^languages$",
        r"^references$",
        r"^objective$",
        r"^summary$",
        r"^profile$",
        r"^https?:",
        r"^www\.",
        r"linkedin",
        r"github",
    )
]
HONORIFIC_ONLY = re.compile(r"^(mr|mrs|ms|dr|prof)\.?\s*$", re.IGNORECASE)

NAME_LABEL_REGEX = re.compile(
    rf"\b(?:full[ \t]+name|name|naam|nom)[ \t]*[:\-][ \t]*"
    rf"([{_LETTER}'\-]+(?:[ \t]+[{_LETTER}'\-]+){{1,3}})",
    re.IGNORECASE,
)
CAPITALIZED_RUN_REGEX = re.compile(
    rf"\b({_CAPITALIZED_WORD})[ \t]+({_CAPITALIZED_WORD})(?:[ \t]+({_CAPITALIZED_WORD}))?\b"
)
HEADER_WORDS = re.compile(r"curriculum|resume|vitae|profile|contact|experience", re.IGNORECASE)


@dataclass(frozen=True)
class ExtractedFields:
    full_name: str | None
    email: str | None
    phone: str | None
    confidence: int


@dataclass(frozen=True)
class ParsedCV:
    full_name: str | None
    email: str | None
    phone: str | None
    extracted_text: str
    confidence: int


class FieldExtractor(Protocol):
    def extract(self, text: str) -> ExtractedFields:
        """Derive candidate fields from extracted document text."""


def _title_case(word: str) -> str:
    return "-".join(part[:1].upper() + part[1:].lower() for part in word.split("-"))


def extract_email(text: str) -> str | None:
    """First non-placeholder address, else the first raw match, else None."""
    matches = EMAIL_REGEX.findall(text)
    if not matches:
        return None
    for email in matches:
        lower = email.lower()
        if not any(marker in lower for marker in PLACEHOLDER_EMAIL_MARKERS):
            return email
    return matches[0]


def extract_phone(text: str) -> str | None:
    """First phone-like match with a plausible digit count, separators stripped."""
    for pattern in PHONE_PATTERNS:
        for match in pattern.finditer(text):
            raw = match.groupdict().get("number") or match.group(0)
            candidate = re.sub(r"[^\d+]", "", raw)
            digits = sum(ch.isdigit() for ch in candidate)
            if MIN_PHONE_DIGITS <= digits <= MAX_PHONE_DIGITS:
                return candidate
    return None


def _name_from_line(line: str) -> str | None:
    if any(p.search(line) for p in NAME_SKIP_PATTERNS):
        return None
    if len(line) < 3 or len(line) > 60:
        return None
    if "@" in line or re.search(r"\d", line):
        return None
    if HONORIFIC_ONLY.match(line):
        return None

    words = [w for w in line.split() if len(w) > 1]
    if not 1 <= len(words) <= 5:
        return None
    name_words = [w for w in words if _NAME_WORD.match(w) and w[0].isupper()]
    if len(name_words) < 2 or len(name_words) * 2 <= len(words):
        return None
    return " ".join(_title_case(w) for w in name_words)


def extract_name(text: str) -> str | None:
    """
    Probable full name, or None.

    Order: first plausible line among the first lines of the document, then a
    "Name:" label, then a run of two or three capitalized words near the top.
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    for line in lines[:NAME_SCAN_LINES]:
        name = _name_from_line(line)
        if name:
            return name

    label_match = NAME_LABEL_REGEX.search(text)
    if label_match:
        return " ".join(_title_case(w) for w in label_match.group(1).split())

    run_match = CAPITALIZED_RUN_REGEX.search(text[:NAME_FALLBACK_SCAN_CHARS])
    if run_match:
        combined = " ".join(part for part in run_match.groups() if part)
        if not HEADER_WORDS.search(combined):
            return combined

    return None


def calculate_confidence(
    full_name: str | None, email: str | None, phone: str | None
) -> int:
    score = 0
    if full_name:
        score += NAME_WEIGHT
    if email:
        score += EMAIL_WEIGHT
    if phone:
        score += PHONE_WEIGHT
    return score


class HeuristicFieldExtractor:
    """Regex and layout heuristics tuned for European CVs."""

    def extract(self, text: str) -> ExtractedFields:
        full_name = extract_name(text)
        email = extract_email(text)
        phone = extract_phone(text)
        return ExtractedFields(
            full_name=full_name,
            email=email,
            phone=phone,
            confidence=calculate_confidence(full_name, email, phone),
        )


default_extractor: FieldExtractor = HeuristicFieldExtractor()


def extract_fields(text: str, extractor: FieldExtractor | None = None) -> ExtractedFields:
    """Run the configured field extractor over text. Never raises on odd input."""
    return (extractor or default_extractor).extract(text or "")


def parse_cv(
    data: bytes,
    mime_type: str | None,
    extractor: FieldExtractor | None = None,
) -> ParsedCV:
    """
    Extract text from a CV document and derive candidate fields.

    Raises:
        text_extraction.ExtractionError: unsupported or unreadable document
    """
    text = text_extraction.extract_text(data, mime_type)
    fields = extract_fields(text, extractor)
    return ParsedCV(
        full_name=fields.full_name,
        email=fields.email,
        phone=fields.phone,
        extracted_text=text[: settings.IMPORT_EXTRACTED_TEXT_MAX_CHARS],
        confidence=fields.confidence,
    )
