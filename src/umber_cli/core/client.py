import html
import logging
import threading
from typing import Any

import requests

from .. import __version__
from ..config import Config
from ..errors import NodeBBError
from ..importer.codec import filename_tag
from ..importer.models import RemoteCategory, RemoteTopic, TopicMetadata
from ..validators import (
    validate_category_name,
    validate_post_content,
    validate_title,
)

logger = logging.getLogger(__name__)

# Safety stop for paginated listings.
MAX_PAGES = 1000


def _unwrap(payload: Any) -> Any:
    """Strip the ``{"status": ..., "response": ...}`` envelope of the write API."""
    if isinstance(payload, dict) and "response" in payload:
        return payload["response"]
    return payload


def _optional_id(value: Any) -> int | None:
    """Parse a forum id; ``0``, ``""`` and ``None`` mean "no id"."""
    if value in (None, "", 0, "0"):
        return None
    return int(value)


def _tag_values(raw_tags: Any) -> frozenset[str]:
    """Extract tag values from ``[{"value": ...}]`` or plain strings."""
    values = set()
    for tag in raw_tags or []:
        if isinstance(tag, dict):
            value = tag.get("value") or tag.get("valueEscaped")
        else:
            value = tag
        if value:
            values.add(str(value))
    return frozenset(values)


def _title_tag(title: Any) -> str | None:
    """Filename tag of a listed topic title (listings HTML-escape titles)."""
    if not title:
        return None
    return filename_tag(html.unescape(str(title)))


class NodeBBClient:
    """Blocking client for the NodeBB read (``/api``) and write (``/api/v3``) APIs.

    Every non-2xx response or transport failure raises ``NodeBBError``
    after logging the status and body; only lookups treat 404 as "absent".
    """

    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.base_url = config.nodebb_url.rstrip("/")

    @property
    def session(self) -> requests.Session:
        """Session of the current thread."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Authorization": f"Bearer {self.config.api_token}",
                "Accept": "application/json",
                "User-Agent": f"umber-cli/{__version__}",
            }
        )
        session.verify = not self.config.insecure
        return session

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        allow_404: bool = False,
    ) -> Any:
        """
        Make an API request and return the decoded JSON body.

        Returns ``None`` for an empty body, or for a 404 when *allow_404*
        is set.
        """
        url = f"{self.base_url}{path}"
        session = self._get_session()
        logger.debug("%s %s params=%s", method, path, params)
        try:
            response = session.request(
                method,
                url,
                params=params,
                json=json,
                timeout=(10, self.config.timeout),
            )
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise NodeBBError(f"{method} {path} failed: {exc}") from exc

        if allow_404 and response.status_code == 404:
            return None

        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            body = self._response_body(response)
            logger.error(
                "%s %s returned HTTP %s: %s",
                method,
                path,
                response.status_code,
                body,
            )
            raise NodeBBError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=body,
            ) from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise NodeBBError(
                f"{method} {path} returned a non-JSON body",
                status_code=response.status_code,
                body=response.text,
            ) from exc

    @staticmethod
    def _response_body(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    def ping(self) -> dict[str, Any]:
        """
        Fetch the public forum config to validate URL and token.
        Returns the config dict (includes ``version`` when exposed).
        """
        return self._request("GET", "/api/config") or {}

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(
        self, parent_id: int | None = None
    ) -> list[RemoteCategory]:
        """
        List the direct children of a category.

        Args:
            parent_id: Parent category id; ``None`` lists top-level categories.

        Returns:
            Categories whose parent is *parent_id*.
        """
        payload = _unwrap(self._request("GET", "/api/v3/categories")) or {}
        found: list[RemoteCategory] = []
        pending = list(payload.get("categories", []))
        while pending:
            raw = pending.pop(0)
            pending.extend(raw.get("children") or [])
            category = RemoteCategory(
                id=int(raw["cid"]),
                name=str(raw.get("name", "")),
                parent_id=_optional_id(raw.get("parentCid")),
            )
            if category.parent_id == parent_id:
                found.append(category)
        return found

    def create_category(
        self, name: str, parent_id: int | None = None
    ) -> RemoteCategory:
        """
        Create a category.

        Raises:
            ValueError: If *name* is not a valid category name
            NodeBBError: If the forum rejects the request
        """
        is_valid, error_msg = validate_category_name(name)
        if not is_valid:
            raise ValueError(f"Invalid category: {error_msg}")

        body: dict[str, Any] = {"name": name}
        if parent_id is not None:
            body["parentCid"] = parent_id
        created = _unwrap(self._request("POST", "/api/v3/categories", json=body))
        return RemoteCategory(
            id=int(created["cid"]),
            name=str(created.get("name", name)),
            parent_id=_optional_id(created.get("parentCid", parent_id)),
        )

    # ------------------------------------------------------------------
    # Topics and posts
    # ------------------------------------------------------------------

    def find_topic_by_tag(
        self, tag: str, category_id: int | None
    ) -> RemoteTopic | None:
        """
        Find the topic carrying *tag* in a category.

        Walks the category's topic listing page by page, matching tags
        case-insensitively, then fetches the topic to read its
        ``customData``.

        Returns:
            The topic, or ``None`` if the category has no such topic or
            does not exist.
        """
        if category_id is None:
            return None

        wanted = tag.lower()
        page = 1
        while page <= MAX_PAGES:
            data = self._request(
                "GET",
                f"/api/category/{category_id}",
                params={"page": page},
                allow_404=True,
            )
            if not data:
                return None

            topics = data.get("topics") or []
            for summary in topics:
                tags = _tag_values(summary.get("tags"))
                if not any(t.lower() == wanted for t in tags):
                    continue
                # A sibling's directory tag can spell the same text
                # ("dir.txt" vs directory "txt"); the title decides.
                if _title_tag(summary.get("title")) != wanted:
                    continue
                return self._load_topic(summary, tags)

            page_count = int((data.get("pagination") or {}).get("pageCount") or 1)
            if not topics or page >= page_count:
                return None
            page += 1
        return None

    def _load_topic(
        self, summary: dict[str, Any], tags: frozenset[str]
    ) -> RemoteTopic:
        tid = int(summary["tid"])
        details = _unwrap(self._request("GET", f"/api/v3/topics/{tid}")) or {}
        return RemoteTopic(
            id=tid,
            slug=str(summary.get("slug") or details.get("slug") or tid),
            main_post_id=_optional_id(
                summary.get("mainPid") or details.get("mainPid")
            ),
            title=str(summary.get("title") or details.get("title") or ""),
            tags=tags,
            metadata=TopicMetadata.from_custom_data(details.get("customData")),
        )

    def create_topic(
        self,
        category_id: int,
        title: str,
        content: str,
        tags: list[str],
        custom_data: dict[str, Any],
        uid: int | None = None,
    ) -> RemoteTopic:
        """
        Create a topic whose main post holds *content*.

        Returns:
            The new topic (id, slug, main post id).

        Raises:
            ValueError: If title or content fail validation
            NodeBBError: If the forum rejects the request
        """
        is_valid, error_msg = validate_title(title)
        if not is_valid:
            raise ValueError(f"Invalid topic: {error_msg}")
        is_valid, error_msg = validate_post_content(content)
        if not is_valid:
            raise ValueError(f"Invalid topic: {error_msg}")

        body: dict[str, Any] = {
            "cid": category_id,
            "title": title,
            "content": content,
            "tags": tags,
            "customData": custom_data,
        }
        if uid is not None:
            body["_uid"] = uid

        created = _unwrap(self._request("POST", "/api/v3/topics", json=body))
        tid = int(created["tid"])
        return RemoteTopic(
            id=tid,
            slug=str(created.get("slug") or tid),
            main_post_id=_optional_id(created.get("mainPid")),
            title=title,
            tags=frozenset(tags),
            metadata=TopicMetadata.from_custom_data(custom_data),
        )

    def update_post(
        self, post_id: int, content: str, uid: int | None = None
    ) -> None:
        """
        Replace the content of a post.

        Raises:
            ValueError: If content fails validation
            NodeBBError: If the forum rejects the request
        """
        is_valid, error_msg = validate_post_content(content)
        if not is_valid:
            raise ValueError(f"Invalid post: {error_msg}")

        body: dict[str, Any] = {"content": content}
        if uid is not None:
            body["_uid"] = uid
        self._request("PUT", f"/api/v3/posts/{post_id}", json=body)

    def update_topic_metadata(
        self, topic_id: int, custom_data: dict[str, Any]
    ) -> None:
        """
        Replace a topic's ``customData``.

        Independent of the content update: the post may already hold the
        new content when this call fails.
        """
        self._request(
            "PUT",
            f"/api/v3/topics/{topic_id}",
            json={"customData": custom_data},
        )

    def create_reply(
        self, topic_id: int, content: str, uid: int | None = None
    ) -> int:
        """
        Append a reply to a topic.

        Returns:
            The new post id.
        """
        is_valid, error_msg = validate_post_content(content)
        if not is_valid:
            raise ValueError(f"Invalid reply: {error_msg}")

        body: dict[str, Any] = {"content": content}
        if uid is not None:
            body["_uid"] = uid
        created = _unwrap(
            self._request("POST", f"/api/v3/topics/{topic_id}", json=body)
        )
        return int(created["pid"])

    def get_topic_post_ids(self, topic_id: int) -> list[int]:
        """
        List the post ids of a topic in reading order, main post first.
        """
        indexed: list[tuple[int, int]] = []
        page = 1
        while page <= MAX_PAGES:
            data = self._request(
                "GET", f"/api/topic/{topic_id}", params={"page": page}
            ) or {}
            posts = data.get("posts") or []
            for position, post in enumerate(posts, start=len(indexed)):
                indexed.append((int(post.get("index", position)), int(post["pid"])))

            page_count = int((data.get("pagination") or {}).get("pageCount") or 1)
            if not posts or page >= page_count:
                break
            page += 1

        indexed.sort()
        return [pid for _, pid in indexed]
