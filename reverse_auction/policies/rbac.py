#reverse_auction/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Set

from reverse_auction.core.errors import Forbidden
from reverse_auction.models.enums import ParticipantRole


@dataclass(frozen=True)
class Principal:
    participant_id: str
    role: ParticipantRole
    display_name: str


# --- Core action constants ---
ACTION_CREATE_AUCTION = "CREATE_AUCTION"
ACTION_MANAGE_AUCTION = "MANAGE_AUCTION"
ACTION_SUBMIT_BID = "SUBMIT_BID"
ACTION_RESPOND_INVITATION = "RESPOND_INVITATION"
ACTION_RUN_SCHEDULER = "RUN_SCHEDULER"


def allowed_actions(role: ParticipantRole) -> Set[str]:
    """
    Pure RBAC: which actions a role may attempt.
    Ownership (which auction, which bid) is checked by the services.
    """

    if role == ParticipantRole.BUYER:
        return {ACTION_CREATE_AUCTION, ACTION_MANAGE_AUCTION}

    if role == ParticipantRole.SELLER:
        return {ACTION_SUBMIT_BID, ACTION_RESPOND_INVITATION}

    if role == ParticipantRole.ADMIN:
        return {ACTION_RUN_SCHEDULER}

    return set()


def require_action(principal: Principal, action: str) -> None:
    if action not in allowed_actions(principal.role):
        raise Forbidden(
            f"Role {principal.role.value} not permitted for action {action}."
        )
