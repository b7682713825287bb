"""Built-in search callbacks for ajax_select fields.

Every search callback shares one signature::

    callback(term: str, ids: Optional[list[int]]) -> dict[id, label]

With a non-empty ``ids`` list the callback hydrates those records and
ignores ``term``; otherwise it searches by ``term``.

The callbacks query a ``ContentBackend`` rather than a database directly,
so the host application decides where posts, terms and users live.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

__all__ = [
    "SearchCallback",
    "ContentRecord",
    "ContentBackend",
    "InMemoryContentBackend",
    "SearchCallbacks",
    "absint",
    "parse_id_list",
]

logger = logging.getLogger(__name__)

SearchCallback = Callable[[str, Optional[List[int]]], Dict[Any, str]]

DEFAULT_LIMIT = 20


def absint(value: Any) -> int:
    """Coerce to a non-negative integer; invalid input gives 0."""
    try:
        return abs(int(float(value)))
    except (TypeError, ValueError, OverflowError):
        return 0


def parse_id_list(value: Union[str, Iterable[Any], None]) -> List[int]:
    """Parse ``"3,7"`` or ``[3, "7"]`` into positive integer IDs."""
    if value is None or value == "":
        return []
    items = value.split(",") if isinstance(value, str) else list(value)
    return [i for i in (absint(str(item).strip()) for item in items) if i > 0]


@dataclass
class ContentRecord:
    """A searchable record: post, term or user."""

    id: int
    label: str
    kind: str = "post"
    subtype: str = ""
    status: str = "publish"
    roles: List[str] = field(default_factory=list)
    search_text: str = ""

    def matches(self, term: str) -> bool:
        needle = term.lower()
        return needle in self.label.lower() or needle in self.search_text.lower()


class ContentBackend(ABC):
    """Query interface the built-in search callbacks run against.

    Each query takes WordPress-style argument dicts and returns records in
    result order.
    """

    @abstractmethod
    def query_posts(self, args: Dict[str, Any]) -> List[ContentRecord]:
        """Posts filtered by ``post_type``, ``post_status``, ``s`` or ``post__in``."""

    @abstractmethod
    def query_terms(self, args: Dict[str, Any]) -> List[ContentRecord]:
        """Terms filtered by ``taxonomy``, ``search`` or ``include``."""

    @abstractmethod
    def query_users(self, args: Dict[str, Any]) -> List[ContentRecord]:
        """Users filtered by ``role__in``, ``search`` or ``include``."""


class InMemoryContentBackend(ContentBackend):
    """Content backend over plain record lists."""

    def __init__(self, records: Optional[Iterable[ContentRecord]] = None):
        self.records: List[ContentRecord] = list(records or [])

    def add(self, record: ContentRecord) -> ContentRecord:
        self.records.append(record)
        return record

    @staticmethod
    def _by_include(records: List[ContentRecord], include: Sequence[int]) -> List[ContentRecord]:
        by_id = {r.id: r for r in records}
        return [by_id[i] for i in include if i in by_id]

    @staticmethod
    def _finish(records: List[ContentRecord], args: Dict[str, Any]) -> List[ContentRecord]:
        ordered = sorted(records, key=lambda r: r.label.lower())
        if str(args.get("order", "ASC")).upper() == "DESC":
            ordered.reverse()
        limit = int(args.get("number", args.get("posts_per_page", DEFAULT_LIMIT)))
        return ordered if limit < 0 else ordered[:limit]

    def query_posts(self, args: Dict[str, Any]) -> List[ContentRecord]:
        post_types = args.get("post_type", "post")
        if isinstance(post_types, str):
            post_types = [post_types]
        candidates = [
            r
            for r in self.records
            if r.kind == "post"
            and ("any" in post_types or r.subtype in post_types)
            and (args.get("post_status", "publish") == "any" or r.status == args.get("post_status", "publish"))
        ]
        if args.get("post__in"):
            return self._by_include(candidates, args["post__in"])
        if args.get("s"):
            candidates = [r for r in candidates if r.matches(args["s"])]
        return self._finish(candidates, args)

    def query_terms(self, args: Dict[str, Any]) -> List[ContentRecord]:
        taxonomy = args.get("taxonomy", "category")
        candidates = [r for r in self.records if r.kind == "term" and r.subtype == taxonomy]
        if args.get("include"):
            return self._by_include(candidates, args["include"])
        if args.get("search"):
            candidates = [r for r in candidates if r.matches(args["search"])]
        return self._finish(candidates, args)

    def query_users(self, args: Dict[str, Any]) -> List[ContentRecord]:
        roles = args.get("role__in") or []
        candidates = [
            r
            for r in self.records
            if r.kind == "user" and (not roles or any(role in r.roles for role in roles))
        ]
        if args.get("include"):
            return self._by_include(candidates, args["include"])
        if args.get("search"):
            candidates = [r for r in candidates if r.matches(str(args["search"]).strip("*"))]
        return self._finish(candidates, args)


class SearchCallbacks:
    """Factories for the post, taxonomy and user search callbacks."""

    def __init__(self, backend: ContentBackend):
        self.backend = backend

    def posts(
        self,
        post_type: Union[str, List[str]] = "post",
        query_args: Optional[Dict[str, Any]] = None,
    ) -> SearchCallback:
        """Search posts of the given type(s) by title."""
        extra = dict(query_args or {})

        def callback(term: str, ids: Optional[List[int]] = None) -> Dict[Any, str]:
            args: Dict[str, Any] = {
                "post_type": post_type,
                "posts_per_page": DEFAULT_LIMIT,
                "orderby": "title",
                "order": "ASC",
                "post_status": "publish",
                **extra,
            }
            if ids:
                args["post__in"] = [absint(i) for i in ids]
                args["posts_per_page"] = len(ids)
                args["orderby"] = "post__in"
            elif term != "":
                args["s"] = term

            return {r.id: r.label for r in self.backend.query_posts(args)}

        return callback

    def taxonomy(
        self,
        taxonomy: str = "category",
        query_args: Optional[Dict[str, Any]] = None,
    ) -> SearchCallback:
        """Search terms of one taxonomy by name."""
        extra = dict(query_args or {})

        def callback(term: str, ids: Optional[List[int]] = None) -> Dict[Any, str]:
            args: Dict[str, Any] = {
                "taxonomy": taxonomy,
                "hide_empty": False,
                "number": DEFAULT_LIMIT,
                "orderby": "name",
                "order": "ASC",
                **extra,
            }
            if ids:
                args["include"] = [absint(i) for i in ids]
                args["number"] = len(ids)
            elif term != "":
                args["search"] = term

            return {r.id: r.label for r in self.backend.query_terms(args)}

        return callback

    def users(
        self,
        role: Union[str, List[str]] = "",
        query_args: Optional[Dict[str, Any]] = None,
    ) -> SearchCallback:
        """Search users by login, email or display name, optionally by role."""
        extra = dict(query_args or {})

        def callback(term: str, ids: Optional[List[int]] = None) -> Dict[Any, str]:
            args: Dict[str, Any] = {
                "number": DEFAULT_LIMIT,
                "orderby": "display_name",
                "order": "ASC",
                **extra,
            }
            if role:
                roles = role if isinstance(role, list) else [r.strip() for r in role.split(",")]
                args["role__in"] = [r for r in roles if r]

            if ids:
                args["include"] = [absint(i) for i in ids]
                args["number"] = len(ids)
            elif term != "":
                args["search"] = f"*{term}*"
                args["search_columns"] = ["user_login", "user_email", "display_name"]

            return {r.id: r.label for r in self.backend.query_users(args)}

        return callback
