from .schemas import Capabilities


ADMIN = "admin"
MAMDHOOB = "mamdhoob"
USER = "user"

ROLES = {ADMIN, MAMDHOOB, USER}

_POLICY = {
    ADMIN: Capabilities(
        can_create_voter=True,
        can_delete_voter=True,
        can_edit_voter_details=True,
        can_edit_vote_status=True,
        can_manage_lists=True,
        is_read_only=False,
    ),
    MAMDHOOB: Capabilities(
        can_create_voter=False,
        can_delete_voter=False,
        can_edit_voter_details=False,
        can_edit_vote_status=True,
        can_manage_lists=False,
        is_read_only=False,
    ),
    USER: Capabilities(
        can_create_voter=False,
        can_delete_voter=False,
        can_edit_voter_details=False,
        can_edit_vote_status=False,
        can_manage_lists=False,
        is_read_only=True,
    ),
}


def capabilities_for(role: str) -> Capabilities:
    """Capability set for a role. Unknown roles are read-only."""
    return _POLICY.get(role, _POLICY[USER]).model_copy()
