"""Issue tracker API client.

Provides issue and queue operations on top of ``BaseAPIClient``: reading,
creating and partially updating issues, searching with lazy page traversal,
and queue management.
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence, Union
from urllib.parse import quote

from .base_client import BaseAPIClient
from .errors import (
    APIClientError,
    AuthenticationError,
    ConfigurationError,
    FieldUpdateError,
)
from .field_updates import Add, IssuePatch, Remove, encode_field_updates
from .pagination import Page, PageRequest, PaginationWalker
from .tracker_models import (
    ExpandField,
    Issue,
    IssueCreate,
    Queue,
    QueueCreate,
    SearchParams,
    SearchRequest,
)

logger = logging.getLogger(__name__)


def _resource_key(kind: str, key: str) -> str:
    if not key or not key.strip():
        raise ConfigurationError(f"{kind} key must not be empty")
    return quote(key.strip(), safe="")


class TrackerAPIClient(BaseAPIClient):
    """API client for issue tracker operations.

    Provides:
    - Issue retrieval with optional expanded sections
    - Issue creation and partial updates of array fields
    - Issue search, as one page or as a lazy page walk
    - Queue retrieval, listing, creation and deletion
    """

    async def get_issue(
        self, issue_key: str, expand: Optional[Sequence[ExpandField]] = None
    ) -> Issue:
        """Get an issue by key or id.

        Args:
            issue_key: Issue key (e.g. "TREK-9844") or id
            expand: Optional sections to include (transitions, attachments, comments)

        Returns:
            The issue

        Raises:
            NotFoundError: If the issue does not exist
            AuthenticationError: If the token is rejected
            APIClientError: For any other failure
        """
        path = f"issues/{_resource_key('Issue', issue_key)}"
        logger.debug(f"Fetching issue {issue_key}")

        try:
            response = await self.get(
                path,
                params={"expand": list(expand) if expand else None},
                expected_type=Issue,
            )
        except AuthenticationError as e:
            logger.error(f"Authentication failed while fetching issue {issue_key}: {e}")
            raise
        except APIClientError as e:
            logger.error(f"Failed to fetch issue {issue_key}: {e}")
            raise

        issue: Issue = response.data
        logger.info(f"Fetched issue {issue.key}")
        return issue

    async def create_issue(self, issue: IssueCreate) -> Issue:
        """Create an issue.

        The request is retried on transient failures only when ``issue.unique``
        is set, since the tracker then rejects duplicates.
        """
        response = await self.post(
            "issues/",
            body=issue,
            expected_type=Issue,
            retry_safe=issue.unique is not None,
        )
        created: Issue = response.data
        logger.info(f"Created issue {created.key} in queue {issue.queue}")
        return created

    async def update_issue(
        self,
        issue_key: str,
        patch: Union[IssuePatch, Mapping[str, Any]],
        version: Optional[int] = None,
    ) -> Issue:
        """Apply field updates to an issue.

        Args:
            issue_key: Issue key or id
            patch: ``IssuePatch`` or a mapping of field name to value or
                ``FieldUpdate`` (``Add``, ``Remove``, ``Set``, ``Replace``, ``Clear``)
            version: Expected issue version; the tracker rejects stale updates

        Returns:
            The updated issue

        Raises:
            FieldUpdateError: If the patch is empty or a field is updated twice
        """
        path = f"issues/{_resource_key('Issue', issue_key)}"

        if isinstance(patch, IssuePatch):
            body = patch.to_body()
            idempotent = patch.is_idempotent
        else:
            body = encode_field_updates(patch)
            idempotent = not any(isinstance(u, (Add, Remove)) for u in patch.values())

        if not body:
            raise FieldUpdateError("Issue update has no field changes")

        response = await self.patch(
            path,
            params={"version": version},
            body=body,
            expected_type=Issue,
            retry_safe=idempotent,
        )
        updated: Issue = response.data
        logger.info(f"Updated issue {updated.key}: {', '.join(body)}")
        return updated

    async def search_issues(
        self,
        request: SearchRequest,
        params: Optional[SearchParams] = None,
    ) -> List[Issue]:
        """Search issues by filter, query language, keys or queue.

        Returns a single response worth of issues; use ``iter_search_issues``
        to walk every page.
        """
        query = params.to_query() if params else None
        response = await self.post(
            "issues/_search",
            params=query,
            body=request,
            expected_type=List[Issue],
            retry_safe=True,
        )
        issues: List[Issue] = response.data
        logger.info(f"Search returned {len(issues)} issues")
        return issues

    async def search_issues_page(
        self, request: SearchRequest, page_request: PageRequest
    ) -> Page:
        """Fetch one page of search results."""
        return await self.fetch_page(
            "POST", "issues/_search", Issue, page_request, body=request, retry_safe=True
        )

    def iter_search_issues(
        self,
        request: SearchRequest,
        per_page: int = 50,
        max_pages: Optional[int] = None,
    ) -> PaginationWalker:
        """Lazily walk all pages of search results."""
        return self.iter_pages(
            "POST",
            "issues/_search",
            Issue,
            per_page=per_page,
            max_pages=max_pages,
            body=request,
            retry_safe=True,
        )

    async def get_queue(
        self, queue_key: str, expand: Optional[Sequence[str]] = None
    ) -> Queue:
        """Get a queue by key."""
        response = await self.get(
            f"queues/{_resource_key('Queue', queue_key)}",
            params={"expand": list(expand) if expand else None},
            expected_type=Queue,
        )
        return response.data

    def iter_queues(
        self, per_page: int = 50, max_pages: Optional[int] = None
    ) -> PaginationWalker:
        return self.iter_pages(
            "GET", "queues/", Queue, per_page=per_page, max_pages=max_pages
        )

    async def list_queues(
        self, per_page: int = 50, max_pages: Optional[int] = None
    ) -> List[Queue]:
        """List all queues, following pagination."""
        queues = await self.iter_queues(per_page=per_page, max_pages=max_pages).collect()
        logger.info(f"Listed {len(queues)} queues")
        return queues

    async def create_queue(self, queue: QueueCreate) -> Queue:
        """Create a queue."""
        response = await self.post("queues/", body=queue, expected_type=Queue)
        created: Queue = response.data
        logger.info(f"Created queue {created.key}")
        return created

    async def delete_queue(self, queue_key: str) -> None:
        """Delete a queue."""
        await self.delete(f"queues/{_resource_key('Queue', queue_key)}")
        logger.info(f"Deleted queue {queue_key}")
