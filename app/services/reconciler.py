"""Replace an owner's skill associations with a target set, atomically.

An owner is either an assessment (evaluation or rating) or a student. The
stored associations are brought in line with the caller's target set by
diffing on skill id: dropped skills are deleted, every incoming skill is
upserted. All writes share one transaction; after a successful call the
stored skill ids equal the incoming ones exactly.
"""

from __future__ import annotations

import enum
import logging
import sqlite3
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import psycopg

import models
from app.errors import InvalidReferenceError, NotFoundError, TransactionFailedError

logger = logging.getLogger(__name__)

UNCHANGED: object = object()


class OwnerKind(enum.Enum):
    ASSESSMENT = "assessment"
    STUDENT = "student"

    @property
    def table(self) -> models.AssociationTable:
        if self is OwnerKind.ASSESSMENT:
            return models.ASSESSMENT_SKILLS
        return models.STUDENT_SKILLS


@dataclass(frozen=True)
class AssociationInput:
    """One desired association.

    ``keep_score`` attaches the skill without touching a score that is
    already stored; ``score=None`` without it clears the score.
    """

    skill_id: int
    score: Optional[float] = None
    keep_score: bool = False


@dataclass(frozen=True)
class ReconcileResult:
    associations: list[dict[str, object]]
    comment: Optional[str]


@dataclass(frozen=True)
class ReconcilePlan:
    to_delete: list[int]
    to_upsert: list[AssociationInput]


def collapse_duplicates(incoming: Iterable[AssociationInput]) -> list[AssociationInput]:
    """Collapse repeated skill ids: the last occurrence in input order wins.

    The surviving entry keeps the position of the skill's first occurrence.
    """
    positions: dict[int, int] = {}
    collapsed: list[AssociationInput] = []
    for entry in incoming:
        index = positions.get(entry.skill_id)
        if index is None:
            positions[entry.skill_id] = len(collapsed)
            collapsed.append(entry)
        else:
            collapsed[index] = entry
    return collapsed


def plan_reconciliation(
    current_ids: Iterable[int], incoming: Sequence[AssociationInput]
) -> ReconcilePlan:
    """Diff stored skill ids against de-duplicated incoming entries."""
    incoming_ids = {entry.skill_id for entry in incoming}
    to_delete = sorted(set(current_ids) - incoming_ids)
    return ReconcilePlan(to_delete=to_delete, to_upsert=list(incoming))


def _association_payload(row: dict[str, object]) -> dict[str, object]:
    return {
        "skillId": row["skill_id"],
        "score": row["score"],
        "skill": {
            "id": row["skill_id"],
            "name": row["name"],
            "type": row["type"],
            "description": row["description"],
        },
    }


def load_associations(kind: OwnerKind, owner_id: int) -> list[dict[str, object]]:
    """Return the owner's stored associations with joined skill metadata."""
    return [_association_payload(row) for row in models.list_associations(kind.table, owner_id)]


def reconcile(
    kind: OwnerKind,
    owner_id: int,
    incoming: Iterable[AssociationInput],
    *,
    comment: object = UNCHANGED,
    deadline: Optional[float] = None,
) -> ReconcileResult:
    """Bring the owner's stored associations in line with ``incoming``.

    Args:
        kind: Which owner table ``owner_id`` refers to.
        owner_id: Primary key of the assessment or student.
        incoming: Target associations; duplicate skill ids resolve last-wins.
        comment: New owner comment (assessments only). Left untouched when
            not supplied.
        deadline: Optional ``time.monotonic()`` instant after which the
            transaction is rolled back instead of committed.

    Raises:
        NotFoundError: The owner does not exist.
        InvalidReferenceError: An incoming skill id does not exist.
        TransactionFailedError: The storage layer failed or the deadline
            passed; nothing was written.
    """
    table = kind.table
    if comment is not UNCHANGED and not table.has_comment:
        raise ValueError(f"{kind.value} owners carry no comment.")

    raw = list(incoming)
    entries = collapse_duplicates(raw)
    if len(entries) != len(raw):
        logger.debug(
            "Collapsed %d duplicate skill id(s) for %s %s",
            len(raw) - len(entries),
            kind.value,
            owner_id,
        )

    try:
        with models.transaction() as cur:
            if not models.touch_owner(cur, table, owner_id):
                raise NotFoundError(f"{kind.value.capitalize()} {owner_id} not found.")

            missing = models.find_missing_ids(cur, "skills", (e.skill_id for e in entries))
            if missing:
                raise InvalidReferenceError("skill", missing)

            current = models.fetch_association_scores(cur, table, owner_id)
            plan = plan_reconciliation(current.keys(), entries)

            models.delete_associations(cur, table, owner_id, plan.to_delete)
            for entry in plan.to_upsert:
                models.upsert_association(
                    cur,
                    table,
                    owner_id,
                    entry.skill_id,
                    entry.score,
                    keep_score=entry.keep_score,
                )
            if comment is not UNCHANGED:
                models.update_owner_comment(cur, table, owner_id, comment)  # type: ignore[arg-type]

            if deadline is not None and time.monotonic() > deadline:
                raise TransactionFailedError("Reconciliation deadline exceeded; no changes saved.")
    except (sqlite3.Error, psycopg.Error) as exc:
        logger.exception("Reconciliation of %s %s rolled back", kind.value, owner_id)
        raise TransactionFailedError("Failed to update skill associations.") from exc

    logger.info(
        "Reconciled %s %s: %d deleted, %d upserted",
        kind.value,
        owner_id,
        len(plan.to_delete),
        len(plan.to_upsert),
    )
    return ReconcileResult(
        associations=load_associations(kind, owner_id),
        comment=models.get_owner_comment(table, owner_id),
    )
