"""Tests for the taxonomy client."""
import httpx
import pytest

from category_intel.models import AspectDataType, AspectUsage, Cardinality, RelevancyTier
from category_intel.taxonomy import EmptyQueryError, TaxonomyClient, TaxonomyError, extract_ancestry
from conftest import BASE_URL, FakeTaxonomyAPI, aspect, make_client, suggestion


# ── Tree id ──────────────────────────────────────────────────

class TestCategoryTreeId:
    @pytest.mark.asyncio
    async def test_resolves_tree_id(self):
        api = FakeTaxonomyAPI(tree_id="3")
        client = make_client(api)
        assert await client.resolve_category_tree_id() == "3"
        assert api.requests[0].url.params["marketplace_id"] == "EBAY_US"

    @pytest.mark.asyncio
    async def test_tree_id_is_memoized(self):
        api = FakeTaxonomyAPI(tree_id="3")
        client = make_client(api)
        await client.resolve_category_tree_id()
        await client.resolve_category_tree_id()
        await client.suggest_categories("anything")
        assert api.count("get_default_category_tree_id") == 1

    @pytest.mark.asyncio
    async def test_invalidate_refetches(self):
        api = FakeTaxonomyAPI()
        client = make_client(api)
        await client.resolve_category_tree_id()
        client.invalidate_tree_id()
        await client.resolve_category_tree_id()
        assert api.count("get_default_category_tree_id") == 2

    @pytest.mark.asyncio
    async def test_tree_failure_is_fatal(self):
        api = FakeTaxonomyAPI(tree_status=500)
        client = make_client(api)
        with pytest.raises(TaxonomyError) as exc:
            await client.suggest_categories("Pokemon Fire Red GBA")
        assert exc.value.status_code == 500
        assert api.count("get_category_suggestions") == 0

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        api = FakeTaxonomyAPI()
        client = make_client(api)
        await client.resolve_category_tree_id()
        assert api.requests[0].headers["Authorization"] == "Bearer test-token"


# ── Suggestions ──────────────────────────────────────────────

class TestSuggestCategories:
    @pytest.mark.asyncio
    async def test_parses_suggestions_in_order(self):
        api = FakeTaxonomyAPI(suggestions=[
            suggestion("139973", "Video Games", relevancy="HIGH",
                       ancestors=[("1249", "Video Games & Consoles")]),
            suggestion("139971", "Video Game Consoles", relevancy="MEDIUM"),
        ])
        client = make_client(api)
        result = await client.suggest_categories("Pokemon Fire Red GBA")
        assert [s.category.id for s in result] == ["139973", "139971"]
        assert result[0].relevancy_tier == RelevancyTier.HIGH
        assert result[1].relevancy_tier == RelevancyTier.MEDIUM
        assert result[0].level == 2
        assert result[0].path == "Video Games & Consoles > Video Games"

    @pytest.mark.asyncio
    async def test_query_is_sent(self):
        api = FakeTaxonomyAPI()
        client = make_client(api)
        await client.suggest_categories("  Apple iPhone 12  ")
        req = [r for r in api.requests if r.url.path.endswith("get_category_suggestions")][0]
        assert req.url.params["q"] == "Apple iPhone 12"
        assert "/category_tree/0/" in req.url.path

    @pytest.mark.asyncio
    async def test_zero_suggestions_is_valid(self):
        client = make_client(FakeTaxonomyAPI(suggestions=[]))
        assert await client.suggest_categories("Mysterious Unknown Item") == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    async def test_blank_query_rejected_without_request(self, query):
        api = FakeTaxonomyAPI()
        client = make_client(api)
        with pytest.raises(EmptyQueryError):
            await client.suggest_categories(query)
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_missing_relevancy_is_low(self):
        client = make_client(FakeTaxonomyAPI(suggestions=[suggestion("1", "Misc", relevancy=None)]))
        result = await client.suggest_categories("thing")
        assert result[0].relevancy_tier == RelevancyTier.LOW

    @pytest.mark.asyncio
    async def test_error_status_carries_body(self):
        client = make_client(FakeTaxonomyAPI(suggestion_status=503))
        with pytest.raises(TaxonomyError) as exc:
            await client.suggest_categories("test item")
        assert exc.value.status_code == 503
        assert "suggestions failed" in exc.value.body
        assert "503" in str(exc.value)


# ── Aspects ──────────────────────────────────────────────────

class TestAspectsForCategory:
    @pytest.mark.asyncio
    async def test_parses_constraints(self):
        api = FakeTaxonomyAPI(aspects={"9355": [
            aspect("Brand", required=True, values=["Apple", "Samsung"]),
            aspect("Storage Capacity", usage="RECOMMENDED", values=["64 GB"], cardinality="MULTI"),
            aspect("Screen Size", data_type="NUMBER"),
        ]})
        client = make_client(api)
        brand, storage, screen = await client.aspects_for_category("9355")
        assert brand.name == "Brand"
        assert brand.required is True
        assert brand.usage_tier == AspectUsage.REQUIRED
        assert brand.allowed_values == ["Apple", "Samsung"]
        assert storage.usage_tier == AspectUsage.RECOMMENDED
        assert storage.cardinality == Cardinality.MULTI
        assert screen.data_type == AspectDataType.NUMBER
        assert screen.allowed_values is None

    @pytest.mark.asyncio
    async def test_always_live_fetch(self):
        api = FakeTaxonomyAPI(aspects={"1": [aspect("Brand")]})
        client = make_client(api)
        await client.aspects_for_category("1")
        await client.aspects_for_category("1")
        assert api.count("get_item_aspects_for_category") == 2

    @pytest.mark.asyncio
    async def test_invalid_category_raises(self):
        client = make_client(FakeTaxonomyAPI(aspects={"invalid-id": 404}))
        with pytest.raises(TaxonomyError) as exc:
            await client.aspects_for_category("invalid-id")
        assert exc.value.status_code == 404
        assert "Category not found" in exc.value.body

    @pytest.mark.asyncio
    async def test_aspect_values_outside_constraint(self):
        raw = {
            "localizedAspectName": "Platform",
            "aspectConstraint": {"aspectRequired": True},
            "aspectValues": [{"localizedValue": "Nintendo DS"}],
        }
        client = make_client(FakeTaxonomyAPI(aspects={"139973": [raw]}))
        (platform,) = await client.aspects_for_category("139973")
        assert platform.allowed_values == ["Nintendo DS"]
        assert platform.usage_tier == AspectUsage.REQUIRED


# ── Leaf / tree navigation ───────────────────────────────────

class TestTreeNavigation:
    @pytest.mark.asyncio
    async def test_leaf_without_children(self):
        client = make_client(FakeTaxonomyAPI(subtrees={"139973": []}))
        assert await client.is_leaf("139973") is True

    @pytest.mark.asyncio
    async def test_not_leaf_with_children(self):
        api = FakeTaxonomyAPI(subtrees={"1249": [{"categoryId": "139973", "categoryName": "Video Games"}]})
        client = make_client(api)
        assert await client.is_leaf("1249") is False

    @pytest.mark.asyncio
    async def test_leaf_check_error_propagates(self):
        client = make_client(FakeTaxonomyAPI(subtrees={"x": 500}))
        with pytest.raises(TaxonomyError):
            await client.is_leaf("x")

    @pytest.mark.asyncio
    async def test_child_categories(self):
        api = FakeTaxonomyAPI(subtrees={"1249": [
            {"categoryId": "139973", "categoryName": "Video Games"},
            {"categoryId": "139971", "categoryName": "Video Game Consoles"},
        ]})
        children = await make_client(api).get_child_categories("1249")
        assert [c.id for c in children] == ["139973", "139971"]

    @pytest.mark.asyncio
    async def test_child_categories_404_means_none(self):
        client = make_client(FakeTaxonomyAPI(subtrees={"139973": 404}))
        assert await client.get_child_categories("139973") == []

    @pytest.mark.asyncio
    async def test_root_categories(self):
        api = FakeTaxonomyAPI(roots=[{"categoryId": "293", "categoryName": "Consumer Electronics"}])
        roots = await make_client(api).get_root_categories()
        assert roots[0].name == "Consumer Electronics"

    def test_extract_ancestry(self):
        from category_intel.models import CategorySuggestion
        s = CategorySuggestion.from_api(
            suggestion("139973", "Video Games", ancestors=[("1249", "Video Games & Consoles")])
        )
        assert [c.id for c in extract_ancestry(s)] == ["1249", "139973"]


# ── Transport failures ───────────────────────────────────────

class TestTransportErrors:
    @pytest.mark.asyncio
    async def test_network_error_wrapped(self):
        def boom(request):
            raise httpx.ConnectError("Network error", request=request)

        http = httpx.AsyncClient(transport=httpx.MockTransport(boom))
        client = TaxonomyClient(access_token="t", base_url=BASE_URL, http_client=http)
        with pytest.raises(TaxonomyError, match="Network error") as exc:
            await client.suggest_categories("test item")
        assert exc.value.status_code is None
        assert isinstance(exc.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_timeout_wrapped(self):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        http = httpx.AsyncClient(transport=httpx.MockTransport(slow))
        client = TaxonomyClient(access_token="t", base_url=BASE_URL, http_client=http, timeout=2.5)
        with pytest.raises(TaxonomyError, match="timeout after 2.5s"):
            await client.resolve_category_tree_id()

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        def garbage(request):
            return httpx.Response(200, text="<html>oops</html>")

        http = httpx.AsyncClient(transport=httpx.MockTransport(garbage))
        client = TaxonomyClient(access_token="t", base_url=BASE_URL, http_client=http)
        with pytest.raises(TaxonomyError, match="malformed body"):
            await client.resolve_category_tree_id()

    @pytest.mark.asyncio
    async def test_context_manager_closes_owned_client(self):
        async with TaxonomyClient(access_token="t", base_url=BASE_URL) as client:
            http = client._http()
        assert http.is_closed
