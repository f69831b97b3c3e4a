"""
Permission classes for AI thread API.

- IsThreadParticipant: Owner or any member (VIEW or INTERVENE)
- CanInterveneInThread: Owner or INTERVENE member
- IsThreadOwner: Owner only

Permission Hierarchy:
    OWNER > INTERVENE > VIEW

Views look threads up through accessible_threads(), so threads the user
cannot see at all answer 404 instead of 403.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db.models import Q
from rest_framework import permissions

from ai.models import AIThread, AIThreadMember, MemberPermission, SenderKind

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


def accessible_threads(user):
    """Threads the user owns or is a member of."""
    return AIThread.objects.filter(Q(owner=user) | Q(members__user=user)).distinct()


def sender_kind_for(thread: AIThread, user) -> str | None:
    """
    Sender kind a user submits as, or None if they may not submit.

    The owner submits as OWNER; INTERVENE members as COLLABORATOR.
    """
    if thread.owner_id == user.pk:
        return SenderKind.OWNER
    if AIThreadMember.objects.filter(
        thread=thread, user=user, permission=MemberPermission.INTERVENE
    ).exists():
        return SenderKind.COLLABORATOR
    return None


class IsThreadParticipant(permissions.BasePermission):
    """Allows access to the owner and every member of the thread."""

    message = "You do not have access to this thread."

    def has_object_permission(self, request: Request, view: APIView, obj: AIThread) -> bool:
        if not request.user.is_authenticated:
            return False
        if obj.owner_id == request.user.pk:
            return True
        return AIThreadMember.objects.filter(thread=obj, user=request.user).exists()


class CanInterveneInThread(permissions.BasePermission):
    """
    Allows the owner and INTERVENE members.

    Used for operations that write to the thread: submitting messages
    and triggering queue drains.
    """

    message = "You do not have permission to send messages in this thread."

    def has_object_permission(self, request: Request, view: APIView, obj: AIThread) -> bool:
        if not request.user.is_authenticated:
            return False
        return sender_kind_for(obj, request.user) is not None


class IsThreadOwner(permissions.BasePermission):
    """Allows access only to the thread owner."""

    message = "Only the thread owner can perform this action."

    def has_object_permission(self, request: Request, view: APIView, obj: AIThread) -> bool:
        if not request.user.is_authenticated:
            return False
        return obj.owner_id == request.user.pk
