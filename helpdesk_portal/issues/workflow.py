"""Issue status transitions.

Every status change an issue goes through is one of the ``TRANSITIONS``
below. A transition names the statuses it may start from, the status it
moves to and the roles allowed to request it; ``apply_transition`` checks
all of that under a row lock and records one ``IssueEvent`` per change.
"""

import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from accounts.models import Role
from helpdesk.api import ApiError, Conflict, Forbidden, require_role

from .models import Issue, IssueEvent
from .notifications import send_status_change_email

logger = logging.getLogger(__name__)

Status = Issue.Status
Action = IssueEvent.Action


@dataclass(frozen=True)
class Transition:
    action: str
    sources: tuple
    target: str
    roles: tuple
    verb: str
    comment_required: bool = False
    assignee_only: bool = False
    requires_technician: bool = False
    clears_assignment: bool = False


TRANSITIONS = {
    transition.action: transition
    for transition in (
        Transition(
            Action.DC_APPROVE,
            (Status.PENDING, Status.REOPENED),
            Status.DC_APPROVED,
            (Role.DC,),
            "approve",
        ),
        Transition(
            Action.DC_REJECT,
            (Status.PENDING, Status.REOPENED),
            Status.DC_REJECTED,
            (Role.DC,),
            "reject",
            comment_required=True,
        ),
        Transition(
            Action.ROOT_APPROVE,
            (Status.DC_APPROVED,),
            Status.SUPER_ADMIN_APPROVED,
            (Role.ROOT,),
            "approve",
        ),
        Transition(
            Action.ROOT_REJECT,
            (Status.DC_APPROVED,),
            Status.SUPER_ADMIN_REJECTED,
            (Role.ROOT,),
            "reject",
            comment_required=True,
        ),
        Transition(
            Action.ASSIGN,
            (Status.SUPER_ADMIN_APPROVED,),
            Status.ASSIGNED,
            (Role.SUPER_USER,),
            "assign",
            requires_technician=True,
        ),
        Transition(
            Action.PROCURE,
            (Status.SUPER_ADMIN_APPROVED, Status.ADD_TO_PROCUREMENT),
            Status.UNDER_PROCUREMENT,
            (Role.SUPER_USER,),
            "send to procurement",
        ),
        Transition(
            Action.START,
            (Status.ASSIGNED,),
            Status.IN_PROGRESS,
            (Role.TECHNICAL_OFFICER,),
            "start",
            assignee_only=True,
        ),
        Transition(
            Action.RESOLVE,
            (Status.IN_PROGRESS,),
            Status.RESOLVED,
            (Role.TECHNICAL_OFFICER,),
            "resolve",
            assignee_only=True,
        ),
        Transition(
            Action.REQUEST_PROCUREMENT,
            (Status.IN_PROGRESS,),
            Status.ADD_TO_PROCUREMENT,
            (Role.TECHNICAL_OFFICER,),
            "request procurement for",
            assignee_only=True,
        ),
        Transition(
            Action.COMPLETE,
            (Status.ADD_TO_PROCUREMENT, Status.UNDER_PROCUREMENT),
            Status.COMPLETED,
            (Role.SUPER_USER,),
            "complete",
        ),
        Transition(
            Action.REVIEW_APPROVE,
            (Status.RESOLVED,),
            Status.COMPLETED,
            (Role.ROOT,),
            "confirm",
        ),
        Transition(
            Action.REVIEW_REJECT,
            (Status.RESOLVED,),
            Status.IN_PROGRESS,
            (Role.ROOT,),
            "send back",
            comment_required=True,
        ),
        Transition(
            Action.REOPEN,
            (Status.RESOLVED, Status.COMPLETED),
            Status.REOPENED,
            (Role.DC, Role.SUBJECT_CLERK),
            "reopen",
            clears_assignment=True,
        ),
    )
}


def transition_for_status(issue, status, user):
    """Pick the transition that moves ``issue`` to ``status`` on behalf of ``user``.

    When several transitions reach the same status (``In Progress`` is reached
    by both ``start`` and ``review_reject``) the one whose source matches the
    current status wins. Returns ``None`` when the user has no way to reach it.
    """
    candidates = [t for t in TRANSITIONS.values() if t.target == status and user.has_role(*t.roles)]
    for candidate in candidates:
        if issue.status in candidate.sources:
            return candidate
    return candidates[0] if candidates else None


def apply_transition(issue, action, user, comment="", technician=None, changes=None):
    """Move ``issue`` through ``action`` and return the refreshed issue.

    Raises ``Forbidden`` for a role or assignee mismatch, ``ApiError`` for a
    missing comment or technician and ``Conflict`` when the issue is no longer
    in one of the transition's source statuses.
    """
    transition = TRANSITIONS[action]
    require_role(user, *transition.roles)

    comment = (comment or "").strip()
    if transition.comment_required and not comment:
        raise ApiError(f"A comment is required to {transition.verb} this issue.")
    if transition.requires_technician and technician is None:
        raise ApiError("Technical officer is required.")

    with transaction.atomic():
        locked = Issue.objects.select_for_update().get(pk=issue.pk)
        if locked.status not in transition.sources:
            raise Conflict(
                f"Cannot {transition.verb} an issue with status '{locked.status}'.",
                currentStatus=locked.status,
            )
        if transition.assignee_only and locked.assigned_to_id != user.pk:
            raise Forbidden("You are not assigned to this issue")

        previous_status = locked.status
        locked.status = transition.target
        locked.last_status_updated_at = timezone.now()
        update_fields = ["status", "last_status_updated_at", "updated_at"]
        if transition.requires_technician:
            locked.assigned_to = technician
            update_fields.append("assigned_to")
        elif transition.clears_assignment:
            locked.assigned_to = None
            update_fields.append("assigned_to")
        for field, value in (changes or {}).items():
            setattr(locked, field, value)
            update_fields.append(field)
        locked.save(update_fields=update_fields)

        IssueEvent.objects.create(
            issue=locked,
            actor=user,
            action=transition.action,
            from_status=previous_status,
            to_status=transition.target,
            text=comment or f"Status changed to {transition.target}",
        )

    logger.info(
        "Issue %s moved from '%s' to '%s' by user %s (%s)",
        locked.pk,
        previous_status,
        transition.target,
        user.pk,
        transition.action,
    )
    send_status_change_email(locked, previous_status, transition.target)
    return locked
