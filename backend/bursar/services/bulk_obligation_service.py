# Overview: Service-layer bulk obligation generation for explicit payer lists, grades and groups.

"""
Bulk Obligation Generator

WHY: Monthly tuition and similar charges go to a whole population at once.
Re-running the same generation must not double-charge anyone.

DESIGN PRINCIPLES:
- Target resolution happens first (explicit ids, or grade/group through the
  directory bridge, materializing third parties on first charge)
- Candidates are de-duplicated, then processed independently, one
  transaction each
- A candidate with an active (PENDING/PARTIAL) obligation for the concept
  is skipped
- Per-candidate failures are collected, never raised; the batch continues

CONCURRENCY:
- The third-party row is locked before the duplicate check
- After inserting, the active count is checked again inside the same
  transaction; a concurrent insert that got there first wins and this
  candidate is rolled back as skipped
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..extensions import db
from ..models import ChargeConcept, ThirdParty
from ..validation import ConflictError, NotFoundError, ValidationError, coerce_id_list, require_choice
from .directory_service import KIND_STUDENT, get_directory
from .obligation_service import (
    count_active_obligations,
    find_active_obligation,
    new_obligation,
    parse_overrides,
)
from .concurrency import run_with_retry
from .tenant_service import get_scoped
from .third_party_service import get_or_create_from_directory


TARGET_THIRD_PARTIES = "THIRD_PARTIES"
TARGET_GRADE = "GRADE"
TARGET_GROUP = "GROUP"

TARGET_TYPES = [TARGET_THIRD_PARTIES, TARGET_GRADE, TARGET_GROUP]


@dataclass
class BulkResult:
    created: int = 0
    skipped: int = 0
    errors: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"created": self.created, "skipped": self.skipped, "errors": list(self.errors)}


class _AlreadyCharged(Exception):
    """Internal signal: candidate already has an active obligation."""


def create_massive(
    institution_id: int,
    actor_id: int,
    concept_id: int,
    target_type: str,
    target_ids,
    **overrides,
) -> BulkResult:
    """
    Create one obligation per target for a concept.

    Args:
        target_type: THIRD_PARTIES (target_ids are third-party ids), GRADE or
            GROUP (target_ids are grade/group ids resolved via the directory)
        overrides: amount, discount_amount, discount_reason, due_date, notes

    Returns:
        BulkResult(created, skipped, errors); errors are
        {"third_party_id": ..., "error": "..."} entries; directory people
        that could not be materialized carry third_party_id None and their
        external_id

    Raises:
        NotFoundError: concept absent from the institution (whole call)
        ValidationError: malformed target selector or overrides
    """
    target_type = require_choice(target_type, TARGET_TYPES, "target_type")
    ids = coerce_id_list(target_ids, "target_ids")
    parsed = parse_overrides(**overrides)

    concept = get_scoped(ChargeConcept, concept_id, institution_id, "Concept")

    result = BulkResult()
    candidates = _resolve_candidates(institution_id, target_type, ids, result)

    for third_party_id in candidates:
        try:
            _charge_one(institution_id, actor_id, concept.id, third_party_id, parsed)
            result.created += 1
        except _AlreadyCharged:
            result.skipped += 1
        except (ValidationError, ConflictError, NotFoundError) as exc:
            result.errors.append({"third_party_id": third_party_id, "error": str(exc)})
            current_app.logger.warning(
                "Bulk obligation skipped third party %s for concept %s: %s",
                third_party_id, concept_id, exc,
            )
        except Exception as exc:
            current_app.logger.exception(
                "Bulk obligation failed for third party %s, concept %s",
                third_party_id, concept_id,
            )
            result.errors.append({"third_party_id": third_party_id, "error": str(exc)})

    current_app.logger.info(
        "Bulk obligations for concept %s in institution %s: created=%s skipped=%s errors=%s",
        concept_id, institution_id, result.created, result.skipped, len(result.errors),
    )
    return result


def _resolve_candidates(institution_id: int, target_type: str, ids: list[int], result: BulkResult) -> list[int]:
    """Turn a target selector into a de-duplicated, ordered list of third-party ids."""
    if target_type == TARGET_THIRD_PARTIES:
        return list(dict.fromkeys(ids))

    directory = get_directory()
    if target_type == TARGET_GRADE:
        external_ids = directory.people_in_grades(institution_id, ids)
    else:
        external_ids = directory.people_in_groups(institution_id, ids)

    candidates = []
    for external_id in dict.fromkeys(external_ids):
        try:
            party = get_or_create_from_directory(institution_id, KIND_STUDENT, external_id)
        except (ValidationError, ConflictError, NotFoundError) as exc:
            db.session.rollback()
            _directory_error(result, external_id, str(exc))
            current_app.logger.warning(
                "Bulk obligation could not materialize directory person %s: %s", external_id, exc,
            )
            continue
        except Exception as exc:
            db.session.rollback()
            current_app.logger.exception(
                "Bulk obligation failed resolving directory person %s", external_id,
            )
            _directory_error(result, external_id, str(exc))
            continue

        if party is None:
            _directory_error(result, external_id, f"Directory person {external_id} could not be resolved")
            continue
        candidates.append(party.id)

    return list(dict.fromkeys(candidates))


def _directory_error(result: BulkResult, external_id: str, message: str) -> None:
    result.errors.append({"third_party_id": None, "external_id": external_id, "error": message})


def _charge_one(institution_id, actor_id, concept_id, third_party_id, parsed) -> None:
    """Create-or-skip for one candidate, in its own transaction."""

    def _op():
        # Serializes concurrent generators on the same payer
        get_scoped(ThirdParty, third_party_id, institution_id, "Third party", for_update=True)

        if find_active_obligation(institution_id, third_party_id, concept_id):
            raise _AlreadyCharged()

        concept = get_scoped(ChargeConcept, concept_id, institution_id, "Concept")
        new_obligation(institution_id, actor_id, third_party_id, concept, parsed)
        db.session.flush()

        if count_active_obligations(institution_id, third_party_id, concept_id) > 1:
            raise _AlreadyCharged()

        db.session.commit()

    run_with_retry(_op)
