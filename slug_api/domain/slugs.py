"""Domain helpers for slug normalization, validation and candidate generation."""
from __future__ import annotations

import dataclasses
import json
import re
import unicodedata
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterator, Mapping

from slug_api.core.config import get_settings

DEFAULT_POLICY_PATH = Path(__file__).resolve().parent / "slug_policy.json"

SLUG_PATTERN = re.compile(r"[a-z0-9_-]+")
SUGGESTION_SUFFIXES = ("pro", "expert", "official", "team", "studio", "inc", "co")

_NON_WORD = re.compile(r"[^\w\s-]", re.ASCII)
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")
_DIGITS = re.compile(r"\d")


class OwnerType(str, Enum):
    FREELANCER = "freelancer"
    VENDOR = "vendor"
    ORGANIZATION = "organization"

    @property
    def route_prefix(self) -> str:
        return ROUTE_PREFIXES[self]


ROUTE_PREFIXES = {
    OwnerType.FREELANCER: "/providers",
    OwnerType.VENDOR: "/vendors",
    OwnerType.ORGANIZATION: "/organizations",
}


@dataclass(frozen=True)
class OwnerRef:
    """Identifies one owner: its id inside the partition named by owner_type."""

    owner_id: str
    owner_type: OwnerType

    def __post_init__(self) -> None:
        if not isinstance(self.owner_type, OwnerType):
            object.__setattr__(self, "owner_type", OwnerType(self.owner_type))


def profile_path(owner_type: OwnerType | str, slug: str) -> str:
    return f"{OwnerType(owner_type).route_prefix}/{slug}"


@dataclass(frozen=True)
class SlugPolicy:
    """Tunable rule set for slugs, loaded from a versioned JSON document."""

    version: str = "default"
    min_length: int = 3
    max_length: int = 50
    allow_numbers: bool = True
    allow_hyphens: bool = True
    allow_underscores: bool = False
    profanity_filter: bool = True
    reserved_words: frozenset[str] = frozenset()
    profanity_words: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SlugPolicy":
        defaults = cls()
        return cls(
            version=str(data.get("version") or defaults.version),
            min_length=int(data.get("min_length", defaults.min_length)),
            max_length=int(data.get("max_length", defaults.max_length)),
            allow_numbers=bool(data.get("allow_numbers", defaults.allow_numbers)),
            allow_hyphens=bool(data.get("allow_hyphens", defaults.allow_hyphens)),
            allow_underscores=bool(data.get("allow_underscores", defaults.allow_underscores)),
            profanity_filter=bool(data.get("profanity_filter", defaults.profanity_filter)),
            reserved_words=frozenset(str(w).lower() for w in data.get("reserved_words") or ()),
            profanity_words=tuple(str(w).lower() for w in data.get("profanity_words") or ()),
        )

    def replace(self, **changes: Any) -> "SlugPolicy":
        return dataclasses.replace(self, **changes)


def load_policy(path: str | Path | None = None) -> SlugPolicy:
    """Load a policy document; falls back to SLUG_POLICY_PATH, then the bundled file."""
    source = Path(path or get_settings().slug_policy_path or DEFAULT_POLICY_PATH)
    with source.open("r", encoding="utf-8") as handle:
        return SlugPolicy.from_dict(json.load(handle))


@lru_cache
def get_policy() -> SlugPolicy:
    return load_policy()


RESERVED_CODES = frozenset({"reserved", "profanity"})


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    codes: list[str] = field(default_factory=list)

    @property
    def reserved(self) -> bool:
        return any(code in RESERVED_CODES for code in self.codes)


def normalize(text: str | None, max_length: int | None = None, policy: SlugPolicy | None = None) -> str:
    """Turn free text into a slug candidate. Never fails; may return ''."""
    policy = policy or get_policy()
    length = policy.max_length if max_length is None else max_length
    folded = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    slug = _NON_WORD.sub("", folded.lower().strip())
    if not policy.allow_numbers:
        slug = _DIGITS.sub("", slug)
    if not policy.allow_underscores:
        slug = slug.replace("_", "")
    slug = _WHITESPACE.sub("-", slug.strip())
    if not policy.allow_hyphens:
        slug = slug.replace("-", "")
    slug = _HYPHENS.sub("-", slug).strip("-_")
    if len(slug) > length:
        slug = slug[: max(length, 0)].rstrip("-_")
    return slug


def validate(slug: str | None, policy: SlugPolicy | None = None) -> ValidationResult:
    """Check every rule independently so callers can show all problems at once."""
    policy = policy or get_policy()
    value = slug or ""
    violations: list[tuple[str, str]] = []

    if len(value) < policy.min_length:
        violations.append(("too_short", f"Slug must be at least {policy.min_length} characters long"))
    if len(value) > policy.max_length:
        violations.append(("too_long", f"Slug must be no more than {policy.max_length} characters long"))
    if not SLUG_PATTERN.fullmatch(value):
        violations.append(
            ("invalid_characters", "Slug can only contain lowercase letters, numbers, hyphens, and underscores")
        )
    if not policy.allow_numbers and _DIGITS.search(value):
        violations.append(("digits_not_allowed", "Numbers are not allowed in slugs"))
    if not policy.allow_hyphens and "-" in value:
        violations.append(("hyphens_not_allowed", "Hyphens are not allowed in slugs"))
    if not policy.allow_underscores and "_" in value:
        violations.append(("underscores_not_allowed", "Underscores are not allowed in slugs"))
    if value.startswith("-") or value.endswith("-"):
        violations.append(("edge_hyphen", "Slug cannot start or end with a hyphen"))
    if value.startswith("_") or value.endswith("_"):
        violations.append(("edge_underscore", "Slug cannot start or end with an underscore"))

    lowered = value.lower()
    if lowered in policy.reserved_words:
        violations.append(("reserved", "This slug is reserved and cannot be used"))
    if policy.profanity_filter and any(word and word in lowered for word in policy.profanity_words):
        violations.append(("profanity", "Slug contains inappropriate content"))

    return ValidationResult(
        is_valid=not violations,
        errors=[message for _, message in violations],
        codes=[code for code, _ in violations],
    )


def suggestion_candidates(base: str) -> Iterator[str]:
    """Yield alternative slugs in a fixed priority order (numbered, suffixed, shortened)."""
    if not base:
        return
    for i in range(1, 100):
        yield f"{base}-{i}"
    for suffix in SUGGESTION_SUFFIXES:
        yield f"{base}-{suffix}"
    if len(base) > 10:
        shortened = base[:8]
        for i in range(1, 10):
            yield f"{shortened}{i}"
