import logging
from typing import Dict, List, Tuple

from .errors import AuthorizationDenied
from .schemas import Capabilities, VoterCandidate, VoterPatch, VoterRecord


logger = logging.getLogger(__name__)

GENDERS = ("Male", "Female")

INVALID_ID_CARD = "InvalidIdCard"
MISSING_NAME = "MissingName"
MISSING_GENDER = "MissingGender"
MISSING_ADDRESS = "MissingAddress"

ID_CARD_PREFIX = "A"
ID_CARD_MIN_LENGTH = 3

DETAIL_FIELDS = (
    "id_card_number",
    "full_name",
    "gender",
    "address",
    "island",
    "phone_number",
    "registrar_party",
    "sheema",
    "sadiq",
    "communicated",
    "notes",
)

# columnas NOT NULL: un null en el patch se descarta
REQUIRED_FIELDS = {
    "id_card_number", "full_name", "address", "island",
    "has_voted", "sheema", "sadiq", "communicated",
}


def check_voter(candidate, can_edit_details: bool) -> Dict[str, Tuple[str, str]]:
    """
    Validate a voter form before it is written.

    Returns a mapping field -> (error code, message); an empty mapping means
    the candidate is acceptable. Every field is checked so the caller can
    show all messages at once. When the caller cannot edit details only
    has_voted is relevant, and it needs no validation.
    """
    errors: Dict[str, Tuple[str, str]] = {}
    if not can_edit_details:
        return errors

    id_card = candidate.id_card_number or ""
    if not id_card.startswith(ID_CARD_PREFIX):
        errors["id_card_number"] = (INVALID_ID_CARD, 'ID Card Number must start with "A"')
    elif len(id_card) < ID_CARD_MIN_LENGTH:
        errors["id_card_number"] = (INVALID_ID_CARD, "ID Card Number is too short")

    if not (candidate.full_name or "").strip():
        errors["full_name"] = (MISSING_NAME, "Full Name cannot be empty")

    if candidate.gender not in GENDERS:
        errors["gender"] = (MISSING_GENDER, "Gender is required")

    if not (candidate.address or "").strip():
        errors["address"] = (MISSING_ADDRESS, "Address is required")

    return errors


def validate_voter(candidate, can_edit_details: bool) -> Dict[str, str]:
    """Field -> message view of check_voter()."""
    return {field: message for field, (_, message) in check_voter(candidate, can_edit_details).items()}


def merged_candidate(existing: VoterRecord, changes: Dict[str, object]) -> VoterCandidate:
    """The record as it will be stored once `changes` (from apply_voter_update) is written."""
    data = existing.model_dump(include=set(VoterCandidate.model_fields))
    data.update(changes)
    return VoterCandidate(**data)


def apply_voter_update(
    existing: VoterRecord, patch: VoterPatch, caps: Capabilities
) -> Tuple[Dict[str, object], List[str]]:
    """
    Decide which fields of a patch may be written by the caller.

    Returns (changes, ignored_fields). Admins get every field they sent;
    vote-status-only roles get has_voted and the detail fields they tried to
    touch come back in ignored_fields. Read-only roles are refused.
    """
    if caps.is_read_only or not (caps.can_edit_voter_details or caps.can_edit_vote_status):
        raise AuthorizationDenied("Read-only accounts cannot modify voter records")

    sent = {
        field: value for field, value in patch.model_dump(exclude_unset=True).items()
        if value is not None or field not in REQUIRED_FIELDS
    }
    if caps.can_edit_voter_details:
        return sent, []

    changes: Dict[str, object] = {}
    if sent.get("has_voted") is not None:
        changes["has_voted"] = sent["has_voted"]

    current = existing.model_dump()
    ignored = [
        field for field in DETAIL_FIELDS
        if field in sent and sent[field] != current.get(field)
    ]
    if ignored:
        logger.warning("Ignoring detail fields %s on voter %s (vote-status-only role)", ignored, existing.id)
    return changes, ignored
