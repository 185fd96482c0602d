"""Shared fixtures: an in-process fake of the taxonomy API."""
from typing import Optional, Union

import httpx
import pytest

from category_intel.taxonomy import TaxonomyClient

BASE_URL = "https://api.test/commerce/taxonomy/v1"


def aspect(
    name: str,
    required: bool = False,
    usage: Optional[str] = None,
    values: Optional[list[str]] = None,
    data_type: str = "STRING",
    cardinality: str = "SINGLE",
) -> dict:
    """One ``get_item_aspects_for_category`` entry."""
    constraint = {
        "aspectDataType": data_type,
        "aspectRequired": required,
        "aspectUsage": usage or ("REQUIRED" if required else "OPTIONAL"),
        "itemToAspectCardinality": cardinality,
    }
    if values is not None:
        constraint["aspectValues"] = [{"localizedValue": v} for v in values]
    return {"localizedAspectName": name, "aspectConstraint": constraint}


def suggestion(category_id: str, name: str, relevancy: Optional[str] = "HIGH", level: int = 2,
               ancestors: Optional[list[tuple[str, str]]] = None) -> dict:
    data = {
        "category": {"categoryId": category_id, "categoryName": name},
        "categoryTreeNodeLevel": level,
    }
    if relevancy:
        data["relevancy"] = relevancy
    if ancestors:
        data["categoryTreeNodeAncestors"] = [
            {"categoryId": cid, "categoryName": cname} for cid, cname in ancestors
        ]
    return data


class FakeTaxonomyAPI:
    """Routes taxonomy requests to canned data and records every call.

    ``aspects`` and ``subtrees`` map a category id to either canned content
    or an int HTTP status to fail with.
    """

    def __init__(
        self,
        suggestions: Optional[list[dict]] = None,
        aspects: Optional[dict[str, Union[list[dict], int]]] = None,
        subtrees: Optional[dict[str, Union[list[dict], int]]] = None,
        roots: Optional[list[dict]] = None,
        tree_id: str = "0",
        tree_status: int = 200,
        suggestion_status: int = 200,
    ):
        self.suggestions = suggestions or []
        self.aspects = aspects or {}
        self.subtrees = subtrees or {}
        self.roots = roots or []
        self.tree_id = tree_id
        self.tree_status = tree_status
        self.suggestion_status = suggestion_status
        self.requests: list[httpx.Request] = []

    def count(self, endpoint: str) -> int:
        return sum(1 for r in self.requests if r.url.path.endswith(endpoint))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params
        if path.endswith("get_default_category_tree_id"):
            if self.tree_status != 200:
                return httpx.Response(self.tree_status, text="tree lookup failed")
            return httpx.Response(200, json={"categoryTreeId": self.tree_id, "categoryTreeVersion": "1"})
        if path.endswith("get_category_suggestions"):
            if self.suggestion_status != 200:
                return httpx.Response(self.suggestion_status, text="suggestions failed")
            return httpx.Response(200, json={"categorySuggestions": self.suggestions})
        if path.endswith("get_item_aspects_for_category"):
            value = self.aspects.get(params["category_id"], [])
            if isinstance(value, int):
                return httpx.Response(value, json={"errors": [{"errorId": 62004, "message": "Category not found"}]})
            return httpx.Response(200, json={"aspects": value})
        if path.endswith("get_category_subtree"):
            value = self.subtrees.get(params["category_id"], [])
            if isinstance(value, int):
                return httpx.Response(value, text="not found")
            node = {"category": {"categoryId": params["category_id"]}}
            if value:
                node["childCategoryTreeNodes"] = [{"category": c} for c in value]
            return httpx.Response(200, json={"categorySubtreeNode": node})
        if path.endswith(f"category_tree/{self.tree_id}"):
            return httpx.Response(
                200,
                json={"rootCategoryNode": {"childCategoryTreeNodes": [{"category": c} for c in self.roots]}},
            )
        return httpx.Response(404, text="no route")


def make_client(api: FakeTaxonomyAPI, **kwargs) -> TaxonomyClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(api.handler))
    return TaxonomyClient(access_token="test-token", base_url=BASE_URL, http_client=http, **kwargs)


@pytest.fixture
def video_game_api():
    return FakeTaxonomyAPI(
        suggestions=[suggestion("139973", "Video Games & Consoles > Video Games")],
        aspects={
            "139973": [
                aspect("Platform", required=True, values=["Nintendo Game Boy Advance"]),
                aspect("Game Name", required=True),
            ],
        },
    )
