"""Async client for the marketplace taxonomy (category tree) API.

Wraps the four read-only endpoints the category engine needs:
- default category tree id per marketplace (memoized per client)
- category suggestions for free text
- item aspects (attribute schema) for a category
- category subtree, used for leaf checks and child listings

No call is retried. Non-2xx responses, transport failures and malformed
bodies all surface as TaxonomyError carrying the raw status and body.
"""
import asyncio
import json
import logging
from typing import Any, Optional

import httpx

from category_intel.config import config
from category_intel.models import AspectConstraint, Category, CategorySuggestion

logger = logging.getLogger(__name__)


class TaxonomyError(Exception):
    """A taxonomy call failed. ``status_code`` is None for transport errors."""

    def __init__(self, operation: str, status_code: Optional[int] = None, body: str = ""):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        if status_code is None:
            message = f"Failed to {operation}: network error - {body}"
        else:
            message = f"Failed to {operation}: {status_code} - {body}"
        super().__init__(message)


class EmptyQueryError(ValueError):
    """Raised before any request when a suggestion query is blank."""


def extract_ancestry(suggestion: CategorySuggestion) -> list[Category]:
    """Return the root-to-leaf category path of a suggestion."""
    return list(suggestion.ancestors) + [suggestion.category]


class TaxonomyClient:
    """Typed wrapper over the taxonomy REST API.

    Use as an async context manager, or pass an existing ``httpx.AsyncClient``
    whose lifetime the caller owns.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        marketplace_id: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.access_token = access_token if access_token is not None else config.EBAY_ACCESS_TOKEN
        self.base_url = (base_url or config.TAXONOMY_BASE_URL).rstrip("/")
        self.marketplace_id = marketplace_id or config.MARKETPLACE_ID
        self.timeout = timeout or config.TAXONOMY_TIMEOUT
        self._client = http_client
        self._owns_client = http_client is None
        self._tree_id: Optional[str] = None
        self._tree_lock = asyncio.Lock()

    async def __aenter__(self) -> "TaxonomyClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Accept-Encoding": "gzip",
        }

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _get(self, operation: str, path: str, params: dict[str, str]) -> httpx.Response:
        url = f"{self.base_url}/{path}"
        try:
            resp = await self._http().get(url, params=params, headers=self.headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise TaxonomyError(operation, None, f"timeout after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise TaxonomyError(operation, None, str(e) or type(e).__name__) from e
        return resp

    @staticmethod
    def _json(operation: str, resp: httpx.Response) -> dict[str, Any]:
        if resp.status_code >= 400:
            raise TaxonomyError(operation, resp.status_code, resp.text)
        try:
            data = resp.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise TaxonomyError(operation, resp.status_code, f"malformed body: {resp.text[:200]}") from e
        if not isinstance(data, dict):
            raise TaxonomyError(operation, resp.status_code, f"malformed body: {resp.text[:200]}")
        return data

    # ── Category tree id ─────────────────────────────────────

    async def resolve_category_tree_id(self, marketplace: Optional[str] = None) -> str:
        """Fetch the marketplace's default tree id once and reuse it."""
        if self._tree_id is not None:
            return self._tree_id
        async with self._tree_lock:
            if self._tree_id is not None:
                return self._tree_id
            op = "get category tree"
            resp = await self._get(
                op,
                "get_default_category_tree_id",
                {"marketplace_id": marketplace or self.marketplace_id},
            )
            data = self._json(op, resp)
            tree_id = data.get("categoryTreeId")
            if not tree_id:
                raise TaxonomyError(op, resp.status_code, "response has no categoryTreeId")
            self._tree_id = str(tree_id)
            logger.info("Resolved category tree id %s", self._tree_id)
            return self._tree_id

    def invalidate_tree_id(self):
        self._tree_id = None

    # ── Suggestions / aspects ────────────────────────────────

    async def suggest_categories(self, free_text: str) -> list[CategorySuggestion]:
        """Suggest categories for free text, in the service's relevancy order.

        An empty list means "no categories found" and is not an error.

        Raises:
            EmptyQueryError: ``free_text`` is empty or whitespace only.
            TaxonomyError: the request failed.
        """
        if not free_text or not free_text.strip():
            raise EmptyQueryError("Category suggestion query must not be empty")
        tree_id = await self.resolve_category_tree_id()
        op = "get category suggestions"
        resp = await self._get(
            op,
            f"category_tree/{tree_id}/get_category_suggestions",
            {"q": free_text.strip()},
        )
        data = self._json(op, resp)
        try:
            suggestions = [CategorySuggestion.from_api(s) for s in data.get("categorySuggestions") or []]
        except (TypeError, ValueError, AttributeError) as e:
            raise TaxonomyError(op, resp.status_code, f"malformed suggestion: {e}") from e
        logger.info("Got %d category suggestions for %r", len(suggestions), free_text)
        return suggestions

    async def aspects_for_category(self, category_id: str) -> list[AspectConstraint]:
        """Fetch a category's aspect schema. Always a live request."""
        tree_id = await self.resolve_category_tree_id()
        op = "get item aspects"
        resp = await self._get(
            op,
            f"category_tree/{tree_id}/get_item_aspects_for_category",
            {"category_id": category_id},
        )
        data = self._json(op, resp)
        try:
            aspects = [AspectConstraint.from_api(a) for a in data.get("aspects") or []]
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            raise TaxonomyError(op, resp.status_code, f"malformed aspect: {e}") from e
        required = [a.name for a in aspects if a.required]
        logger.info(
            "Got %d aspects for category %s (%d required)", len(aspects), category_id, len(required)
        )
        logger.debug("Required aspects for %s: %s", category_id, required)
        return aspects

    # ── Tree navigation ──────────────────────────────────────

    async def _subtree(self, operation: str, category_id: str) -> httpx.Response:
        tree_id = await self.resolve_category_tree_id()
        return await self._get(
            operation,
            f"category_tree/{tree_id}/get_category_subtree",
            {"category_id": category_id},
        )

    @staticmethod
    def _child_nodes(data: dict) -> list[dict]:
        node = data.get("categorySubtreeNode") or {}
        return node.get("childCategoryTreeNodes") or []

    async def is_leaf(self, category_id: str) -> bool:
        """True iff the category has no child nodes (listable)."""
        op = "validate leaf category"
        data = self._json(op, await self._subtree(op, category_id))
        leaf = not self._child_nodes(data)
        logger.info("Category %s is %s", category_id, "a leaf" if leaf else "NOT a leaf (too broad)")
        return leaf

    async def get_child_categories(self, parent_id: str) -> list[Category]:
        """Direct children of a category; a 404 means there are none."""
        op = "get child categories"
        resp = await self._subtree(op, parent_id)
        if resp.status_code == 404:
            logger.info("Category %s has no subtree, treating as leaf", parent_id)
            return []
        data = self._json(op, resp)
        return [Category.from_api(n.get("category") or {}) for n in self._child_nodes(data)]

    async def get_root_categories(self) -> list[Category]:
        """First-level categories of the tree."""
        tree_id = await self.resolve_category_tree_id()
        op = "get category tree"
        data = self._json(op, await self._get(op, f"category_tree/{tree_id}", {}))
        root = data.get("rootCategoryNode") or {}
        return [Category.from_api(n.get("category") or {}) for n in root.get("childCategoryTreeNodes") or []]
