"""Tests for the NodeBB HTTP client."""

import json
from unittest.mock import Mock, patch

import pytest
import requests

from umber_cli.config import Config
from umber_cli.core.client import NodeBBClient
from umber_cli.errors import NodeBBError

REQUEST = "umber_cli.core.client.requests.Session.request"


def _response(payload=None, status: int = 200, text: str | None = None):
    """Build a mock requests.Response."""
    response = Mock()
    response.status_code = status
    if text is not None:
        response.content = text.encode()
        response.text = text
        response.json.side_effect = ValueError("not json")
    elif payload is None:
        response.content = b""
        response.text = ""
        response.json.side_effect = ValueError("empty")
    else:
        response.content = json.dumps(payload).encode()
        response.text = json.dumps(payload)
        response.json.return_value = payload
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status} error", response=response
        )
    return response


def _call(mock_request, index: int = -1):
    """Return (method, url, kwargs) of a recorded request."""
    call = mock_request.call_args_list[index]
    method, url = call.args[:2]
    return method, url, call.kwargs


# ---------------------------------------------------------------------------
# Session setup
# ---------------------------------------------------------------------------


class TestSession:
    """Tests for session construction."""

    def test_bearer_token_and_verify(self, mock_config):
        client = NodeBBClient(mock_config)
        assert client.session.headers["Authorization"] == "Bearer test-token"
        assert client.session.headers["User-Agent"].startswith("umber-cli/")
        assert client.session.verify

    def test_insecure_disables_verification(self):
        config = Config(nodebb_url="https://forum.example.com", api_token="t", insecure=True)
        assert not NodeBBClient(config).session.verify

    def test_base_url_without_trailing_slash(self):
        config = Config(nodebb_url="https://forum.example.com/", api_token="t")
        assert NodeBBClient(config).base_url == "https://forum.example.com"

    def test_session_reused_within_thread(self, mock_config):
        client = NodeBBClient(mock_config)
        assert client.session is client.session


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


class TestErrors:
    """Tests for transport and HTTP failures."""

    @patch(REQUEST)
    def test_http_error_raises_with_status_and_body(self, mock_request, mock_config, caplog):
        mock_request.return_value = _response({"status": {"message": "nope"}}, status=403)

        with pytest.raises(NodeBBError) as exc_info:
            NodeBBClient(mock_config).ping()

        assert exc_info.value.status_code == 403
        assert exc_info.value.body == {"status": {"message": "nope"}}
        assert "HTTP 403" in caplog.text

    @patch(REQUEST)
    def test_connection_error(self, mock_request, mock_config):
        mock_request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(NodeBBError) as exc_info:
            NodeBBClient(mock_config).ping()

        assert exc_info.value.status_code is None
        assert "refused" in str(exc_info.value)

    @patch(REQUEST)
    def test_non_json_body(self, mock_request, mock_config):
        mock_request.return_value = _response(text="<html>maintenance</html>")

        with pytest.raises(NodeBBError, match="non-JSON"):
            NodeBBClient(mock_config).ping()

    @patch(REQUEST)
    def test_timeout_passed(self, mock_request):
        config = Config(nodebb_url="https://forum.example.com", api_token="t", timeout=5)
        mock_request.return_value = _response({})

        NodeBBClient(config).ping()

        assert _call(mock_request)[2]["timeout"] == (10, 5)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

CATEGORY_TREE = {
    "categories": [
        {
            "cid": 1,
            "name": "Docs",
            "parentCid": 0,
            "children": [{"cid": 2, "name": "src", "parentCid": 1, "children": []}],
        },
        {"cid": 3, "name": "General", "parentCid": 0},
    ]
}


class TestCategories:
    """Tests for list_categories() and create_category()."""

    @patch(REQUEST)
    def test_list_top_level(self, mock_request, mock_config):
        mock_request.return_value = _response(CATEGORY_TREE)

        categories = NodeBBClient(mock_config).list_categories()

        assert [(c.id, c.name, c.parent_id) for c in categories] == [
            (1, "Docs", None),
            (3, "General", None),
        ]
        method, url, _ = _call(mock_request)
        assert (method, url) == ("GET", "https://forum.example.com/api/v3/categories")

    @patch(REQUEST)
    def test_list_children(self, mock_request, mock_config):
        mock_request.return_value = _response({"response": CATEGORY_TREE})
        categories = NodeBBClient(mock_config).list_categories(1)
        assert [(c.id, c.name) for c in categories] == [(2, "src")]

    @patch(REQUEST)
    def test_create_with_parent(self, mock_request, mock_config):
        mock_request.return_value = _response(
            {"status": {"code": "ok"}, "response": {"cid": 9, "name": "moves", "parentCid": 2}}
        )

        category = NodeBBClient(mock_config).create_category("moves", 2)

        assert (category.id, category.name, category.parent_id) == (9, "moves", 2)
        method, url, kwargs = _call(mock_request)
        assert method == "POST"
        assert url.endswith("/api/v3/categories")
        assert kwargs["json"] == {"name": "moves", "parentCid": 2}

    @patch(REQUEST)
    def test_create_top_level_omits_parent(self, mock_request, mock_config):
        mock_request.return_value = _response({"response": {"cid": 4, "name": "Docs"}})
        category = NodeBBClient(mock_config).create_category("Docs")
        assert _call(mock_request)[2]["json"] == {"name": "Docs"}
        assert category.parent_id is None

    @patch(REQUEST)
    def test_create_invalid_name(self, mock_request, mock_config):
        with pytest.raises(ValueError):
            NodeBBClient(mock_config).create_category("  ")
        mock_request.assert_not_called()


# ---------------------------------------------------------------------------
# Topic lookup
# ---------------------------------------------------------------------------


def _listing(topics, page_count: int = 1):
    return {"topics": topics, "pagination": {"pageCount": page_count}}


SUMMARY = {
    "tid": 5,
    "slug": "5/readme-md",
    "title": "README.md",
    "mainPid": 50,
    "tags": [{"value": "dir-docs"}, {"value": "Readme-md"}],
}


class TestFindTopicByTag:
    """Tests for find_topic_by_tag()."""

    @patch(REQUEST)
    def test_found_with_metadata(self, mock_request, mock_config):
        mock_request.side_effect = [
            _response(_listing([SUMMARY])),
            _response({"response": {"tid": 5, "customData": {"contentHash": "h", "chunkCount": 2, "isChunked": True}}}),
        ]

        topic = NodeBBClient(mock_config).find_topic_by_tag("readme-md", 12)

        assert topic.id == 5
        assert topic.slug == "5/readme-md"
        assert topic.main_post_id == 50
        assert topic.tags == frozenset({"dir-docs", "Readme-md"})
        assert topic.metadata.content_hash == "h"
        assert topic.metadata.chunk_count == 2
        method, url, kwargs = _call(mock_request, 0)
        assert url.endswith("/api/category/12")
        assert kwargs["params"] == {"page": 1}
        assert _call(mock_request, 1)[1].endswith("/api/v3/topics/5")

    @patch(REQUEST)
    def test_walks_pages(self, mock_request, mock_config):
        other = dict(SUMMARY, tid=4, tags=[{"value": "other-md"}])
        mock_request.side_effect = [
            _response(_listing([other], page_count=2)),
            _response(_listing([SUMMARY], page_count=2)),
            _response({"response": {"customData": {}}}),
        ]

        topic = NodeBBClient(mock_config).find_topic_by_tag("readme-md", 12)

        assert topic.id == 5
        assert _call(mock_request, 1)[2]["params"] == {"page": 2}

    @patch(REQUEST)
    def test_directory_tag_of_sibling_is_not_a_match(self, mock_request, mock_config):
        """'dir.txt' and directory 'txt' both spell the tag 'dir-txt'."""
        sibling = dict(
            SUMMARY, tid=4, title="a.md", tags=[{"value": "dir-txt"}, {"value": "a-md"}]
        )
        own = dict(
            SUMMARY, tid=6, title="dir.txt", tags=[{"value": "dir-txt"}]
        )
        mock_request.side_effect = [
            _response(_listing([sibling, own])),
            _response({"response": {"customData": {}}}),
        ]

        topic = NodeBBClient(mock_config).find_topic_by_tag("dir-txt", 12)

        assert topic.id == 6
        assert _call(mock_request, 1)[1].endswith("/api/v3/topics/6")

    @patch(REQUEST)
    def test_sibling_directory_tag_alone_is_not_found(self, mock_request, mock_config):
        sibling = dict(SUMMARY, title="a.md", tags=[{"value": "dir-txt"}])
        mock_request.return_value = _response(_listing([sibling]))

        assert NodeBBClient(mock_config).find_topic_by_tag("dir-txt", 12) is None
        assert mock_request.call_count == 1

    @patch(REQUEST)
    def test_escaped_title_is_unescaped(self, mock_request, mock_config):
        listed = dict(SUMMARY, title="R&amp;D.md", tags=[{"value": "r-d-md"}])
        mock_request.side_effect = [
            _response(_listing([listed])),
            _response({"response": {"customData": {}}}),
        ]

        topic = NodeBBClient(mock_config).find_topic_by_tag("r-d-md", 12)

        assert topic is not None

    @patch(REQUEST)
    def test_not_found(self, mock_request, mock_config):
        mock_request.return_value = _response(_listing([dict(SUMMARY, tags=[])]))
        assert NodeBBClient(mock_config).find_topic_by_tag("readme-md", 12) is None
        assert mock_request.call_count == 1

    @patch(REQUEST)
    def test_missing_category_is_not_an_error(self, mock_request, mock_config):
        mock_request.return_value = _response({"error": "not found"}, status=404)
        assert NodeBBClient(mock_config).find_topic_by_tag("readme-md", 99) is None

    @patch(REQUEST)
    def test_no_category_makes_no_request(self, mock_request, mock_config):
        assert NodeBBClient(mock_config).find_topic_by_tag("readme-md", None) is None
        mock_request.assert_not_called()

    @patch(REQUEST)
    def test_legacy_metadata_shape(self, mock_request, mock_config):
        mock_request.side_effect = [
            _response(_listing([SUMMARY])),
            _response({"customData": {"sourceRepoUrl": "https://github.com/o/r"}}),
        ]
        topic = NodeBBClient(mock_config).find_topic_by_tag("readme-md", 12)
        assert topic.metadata.repo_url == "https://github.com/o/r"
        assert topic.metadata.chunk_count == 1


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


class TestWrites:
    """Tests for topic, post and reply writes."""

    @patch(REQUEST)
    def test_create_topic(self, mock_request, mock_config):
        mock_request.return_value = _response(
            {"response": {"tid": 7, "slug": "7/main-py", "mainPid": 70}}
        )

        topic = NodeBBClient(mock_config).create_topic(
            3, "main.py", "```py\nx\n```", ["dir-src", "main-py"], {"contentHash": "h"}, uid=2
        )

        assert (topic.id, topic.slug, topic.main_post_id) == (7, "7/main-py", 70)
        method, url, kwargs = _call(mock_request)
        assert (method, url) == ("POST", "https://forum.example.com/api/v3/topics")
        assert kwargs["json"] == {
            "cid": 3,
            "title": "main.py",
            "content": "```py\nx\n```",
            "tags": ["dir-src", "main-py"],
            "customData": {"contentHash": "h"},
            "_uid": 2,
        }

    @patch(REQUEST)
    def test_create_topic_rejects_empty_content(self, mock_request, mock_config):
        with pytest.raises(ValueError, match="Content cannot be empty"):
            NodeBBClient(mock_config).create_topic(3, "t", "", [], {})
        mock_request.assert_not_called()

    @patch(REQUEST)
    def test_update_post(self, mock_request, mock_config):
        mock_request.return_value = _response({"status": {"code": "ok"}})

        NodeBBClient(mock_config).update_post(70, "new body")

        method, url, kwargs = _call(mock_request)
        assert (method, url) == ("PUT", "https://forum.example.com/api/v3/posts/70")
        assert kwargs["json"] == {"content": "new body"}

    @patch(REQUEST)
    def test_update_topic_metadata(self, mock_request, mock_config):
        mock_request.return_value = _response(None)

        NodeBBClient(mock_config).update_topic_metadata(7, {"contentHash": "h2"})

        method, url, kwargs = _call(mock_request)
        assert (method, url) == ("PUT", "https://forum.example.com/api/v3/topics/7")
        assert kwargs["json"] == {"customData": {"contentHash": "h2"}}

    @patch(REQUEST)
    def test_create_reply(self, mock_request, mock_config):
        mock_request.return_value = _response({"response": {"pid": 71, "tid": 7}})

        pid = NodeBBClient(mock_config).create_reply(7, "more", uid=2)

        assert pid == 71
        method, url, kwargs = _call(mock_request)
        assert (method, url) == ("POST", "https://forum.example.com/api/v3/topics/7")
        assert kwargs["json"] == {"content": "more", "_uid": 2}

    @patch(REQUEST)
    def test_get_topic_post_ids_in_order(self, mock_request, mock_config):
        mock_request.side_effect = [
            _response({"posts": [{"pid": 70, "index": 0}, {"pid": 73, "index": 2}], "pagination": {"pageCount": 2}}),
            _response({"posts": [{"pid": 72, "index": 1}], "pagination": {"pageCount": 2}}),
        ]

        assert NodeBBClient(mock_config).get_topic_post_ids(7) == [70, 72, 73]
        assert _call(mock_request, 0)[1].endswith("/api/topic/7")
