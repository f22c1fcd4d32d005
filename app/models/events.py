from datetime import datetime, timezone
from typing import Annotated, Literal

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _ChangeEvent(BaseModel):
    """
    Notification that profile inputs changed.

    Events carry identifiers only. Handlers re-read current state, so a late,
    duplicated or reordered event costs at most one extra recalculation.
    """

    emitted_at: datetime = Field(default_factory=_utcnow)


class MemberJoined(_ChangeEvent):
    kind: Literal["member_joined"] = "member_joined"
    group_id: str
    student_id: str


class MemberLeft(_ChangeEvent):
    kind: Literal["member_left"] = "member_left"
    group_id: str
    student_id: str


class ProfileUpdated(_ChangeEvent):
    kind: Literal["profile_updated"] = "profile_updated"
    student_id: str


class GroupCreated(_ChangeEvent):
    kind: Literal["group_created"] = "group_created"
    group_id: str
    creator_id: str | None = None


class GroupDeleted(_ChangeEvent):
    kind: Literal["group_deleted"] = "group_deleted"
    group_id: str


ChangeEvent = Annotated[
    MemberJoined | MemberLeft | ProfileUpdated | GroupCreated | GroupDeleted,
    Field(discriminator="kind"),
]
