"""Pydantic models for the issue tracker REST API.

Response models ignore unknown fields and accept both the camelCase wire names
and the snake_case attribute names. Request models are dumped by alias with
``None`` fields left out.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .validation import ValidatedModel


class ExpandField(str, Enum):
    """Optional sections the tracker can include in an issue response."""

    TRANSITIONS = "transitions"
    ATTACHMENTS = "attachments"
    COMMENTS = "comments"


class TrackerModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Reference(TrackerModel):
    """Short reference to another tracker object."""

    self_link: Optional[str] = Field(None, alias="self", description="API URL")
    id: Optional[Union[int, str]] = None
    key: Optional[str] = None
    display: Optional[str] = None


class User(TrackerModel):
    self_link: Optional[str] = Field(None, alias="self")
    id: Optional[Union[int, str]] = None
    display: Optional[str] = None
    passport_uid: Optional[int] = Field(None, alias="passportUid")
    cloud_uid: Optional[str] = Field(None, alias="cloudUid")


class Status(Reference):
    pass


class Priority(Reference):
    pass


class IssueType(Reference):
    pass


class QueueRef(Reference):
    pass


class Sprint(Reference):
    pass


class ProjectInfo(Reference):
    pass


class ParentIssue(Reference):
    pass


class Project(TrackerModel):
    primary: Optional[ProjectInfo] = None
    secondary: List[ProjectInfo] = Field(default_factory=list)


class Issue(TrackerModel):
    """An issue as returned by the tracker."""

    self_link: Optional[str] = Field(None, alias="self")
    id: Optional[str] = None
    key: str = Field(..., description="Issue key, e.g. TREK-9844")
    version: Optional[int] = None
    last_comment_updated_at: Optional[str] = Field(None, alias="lastCommentUpdatedAt")
    summary: str
    parent: Optional[ParentIssue] = None
    aliases: List[str] = Field(default_factory=list)
    updated_by: Optional[User] = Field(None, alias="updatedBy")
    description: Optional[str] = None
    sprint: List[Sprint] = Field(default_factory=list)
    issue_type: Optional[IssueType] = Field(None, alias="type")
    priority: Optional[Priority] = None
    created_at: Optional[str] = Field(None, alias="createdAt")
    followers: List[User] = Field(default_factory=list)
    created_by: Optional[User] = Field(None, alias="createdBy")
    votes: int = 0
    assignee: Optional[User] = None
    project: Optional[Project] = None
    queue: Optional[QueueRef] = None
    updated_at: Optional[str] = Field(None, alias="updatedAt")
    status: Optional[Status] = None
    previous_status: Optional[Status] = Field(None, alias="previousStatus")
    favorite: bool = False
    tags: List[str] = Field(default_factory=list)


class Queue(TrackerModel):
    """A queue as returned by the tracker."""

    self_link: Optional[str] = Field(None, alias="self")
    id: Optional[Union[int, str]] = None
    key: str
    version: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    lead: Optional[User] = None
    assign_auto: Optional[bool] = Field(None, alias="assignAuto")
    default_type: Optional[IssueType] = Field(None, alias="defaultType")
    default_priority: Optional[Priority] = Field(None, alias="defaultPriority")


class IssueCreate(ValidatedModel):
    """Body of an issue creation request."""

    model_config = ConfigDict(populate_by_name=True)

    summary: str = Field(..., min_length=1, description="Issue title")
    queue: str = Field(..., min_length=1, description="Queue key")
    description: Optional[str] = None
    issue_type: Optional[str] = Field(None, alias="type")
    priority: Optional[str] = None
    assignee: Optional[str] = None
    parent: Optional[str] = None
    followers: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    unique: Optional[str] = Field(
        None, description="Idempotency key; the tracker rejects a second create"
    )


class QueueCreate(ValidatedModel):
    """Body of a queue creation request."""

    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(..., pattern=r"^[A-Z][A-Z0-9]*$", description="Queue key")
    name: str = Field(..., min_length=1)
    lead: str = Field(..., min_length=1, description="Login of the queue owner")
    default_type: str = Field("task", alias="defaultType")
    default_priority: str = Field("normal", alias="defaultPriority")
    description: Optional[str] = None


class SearchRequest(ValidatedModel):
    """Issue search criteria; only the fields that are set are sent."""

    model_config = ConfigDict(populate_by_name=True)

    filter: Optional[Dict[str, Any]] = None
    query: Optional[str] = None
    keys: Optional[List[str]] = None
    queue: Optional[str] = None
    filter_id: Optional[int] = Field(None, alias="filterId")
    order: Optional[str] = Field(None, description='Sort order, e.g. "+status"')


class SearchParams(ValidatedModel):
    """Query parameters of the issue search endpoint."""

    expand: List[ExpandField] = Field(default_factory=list)
    per_page: Optional[int] = Field(None, gt=0)
    page: Optional[int] = Field(None, gt=0)
    id: Optional[str] = None
    scroll_type: Optional[str] = Field(None, pattern=r"^(sorted|unsorted)$")
    per_scroll: Optional[int] = Field(None, gt=0, le=1000)
    scroll_ttl_millis: Optional[int] = Field(None, gt=0)
    scroll_id: Optional[str] = None

    def to_query(self) -> Dict[str, Any]:
        return {
            "expand": self.expand or None,
            "perPage": self.per_page,
            "page": self.page,
            "id": self.id,
            "scrollType": self.scroll_type,
            "perScroll": self.per_scroll,
            "scrollTTLMillis": self.scroll_ttl_millis,
            "scrollId": self.scroll_id,
        }
