"""Skill submissions.

Signed-in users can propose a new skill for the directory. The form is
validated locally; nothing is written unless every field passes. Accepted
submissions are stored with status ``pending`` for review.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import structlog

from .auth import Identity
from .catalog.github import parse_github_url
from .catalog.models import CATEGORIES, Domain
from .store.base import StoreError, SubmissionStore

log = structlog.get_logger()

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 2000
MAX_TAGS = 10


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ValidationError(Exception):
    """Submission form problems, keyed by field name."""

    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


@dataclass
class SubmissionForm:
    """Raw form input as typed by the user."""
    name: str = ""
    description: str = ""
    category: str = "Development"
    github_url: str = ""
    tags: str = ""  # comma separated


@dataclass
class SkillSubmission:
    name: str
    description: str
    category: str
    author: str
    github_url: str
    tags: List[str] = field(default_factory=list)
    submitted_by: str = ""
    status: SubmissionStatus = SubmissionStatus.PENDING
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "author": self.author,
            "githubUrl": self.github_url,
            "tags": list(self.tags),
            "submittedBy": self.submitted_by,
            "status": self.status.value,
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "SkillSubmission":
        created = data.get("createdAt")
        if isinstance(created, str):
            created = datetime.fromisoformat(created)
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            description=data.get("description", ""),
            category=data.get("category", ""),
            author=data.get("author", ""),
            github_url=data.get("githubUrl", ""),
            tags=list(data.get("tags", [])),
            submitted_by=data.get("submittedBy", ""),
            status=SubmissionStatus(data.get("status", "pending")),
            created_at=created,
        )


def parse_tags(raw: str) -> List[str]:
    return [t.strip() for t in raw.split(",") if t.strip()]


def build_submission(form: SubmissionForm, identity: Identity) -> SkillSubmission:
    """Validate ``form`` and turn it into a pending submission."""
    errors: Dict[str, str] = {}

    name = form.name.strip()
    description = form.description.strip()
    github_url = form.github_url.strip()
    tags = parse_tags(form.tags)

    if not name:
        errors["name"] = "Skill name is required"
    elif len(name) > MAX_NAME_LENGTH:
        errors["name"] = f"Skill name must be at most {MAX_NAME_LENGTH} characters"

    if not description:
        errors["description"] = "Description is required"
    elif len(description) > MAX_DESCRIPTION_LENGTH:
        errors["description"] = f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters"

    if form.category not in CATEGORIES[Domain.SKILLS]:
        errors["category"] = f"Unknown category: {form.category!r}"

    if not github_url:
        errors["github_url"] = "GitHub URL is required"
    elif not github_url.startswith(("https://", "http://")) or parse_github_url(github_url) is None:
        errors["github_url"] = "Enter a GitHub repository URL, e.g. https://github.com/user/repo"

    if len(tags) > MAX_TAGS:
        errors["tags"] = f"At most {MAX_TAGS} tags"

    if errors:
        raise ValidationError(errors)

    return SkillSubmission(
        name=name,
        description=description,
        category=form.category,
        author=identity.display_name or identity.email or "Anonymous",
        github_url=github_url,
        tags=tags,
        submitted_by=identity.uid,
    )


@dataclass
class SubmitResult:
    submission_id: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)
    message: Optional[str] = None
    sign_in_required: bool = False

    @property
    def ok(self) -> bool:
        return self.submission_id is not None


class SubmissionService:
    def __init__(self, store: SubmissionStore):
        self._store = store

    async def submit(self, identity: Optional[Identity], form: SubmissionForm) -> SubmitResult:
        if identity is None:
            return SubmitResult(sign_in_required=True, message="Please sign in to submit a skill")
        try:
            submission = build_submission(form, identity)
        except ValidationError as e:
            return SubmitResult(errors=e.errors)
        try:
            submission_id = await self._store.add_submission(submission.to_record())
        except StoreError as e:
            log.warning("submission_failed", uid=identity.uid, error=str(e))
            return SubmitResult(message="Failed to submit skill")
        log.info("submission_created", uid=identity.uid, submission_id=submission_id)
        return SubmitResult(submission_id=submission_id)

    async def list_for(self, identity: Identity) -> List[SkillSubmission]:
        """Submissions made by ``identity``; raises StoreError."""
        records = await self._store.list_submissions(identity.uid)
        return [SkillSubmission.from_record(r) for r in records]
