"""Tests for the catalog filter engine."""

import pytest

from crowcode.catalog.filter import (
    FilterCriteria,
    category_counts,
    filter_items,
    search_matches,
    source_counts,
    source_matches,
)
from crowcode.catalog.models import Domain, MCPServer, Skill, SourceFacet
from crowcode.catalog.store import CatalogStore


CRITERIA = [
    FilterCriteria(),
    FilterCriteria(query="git"),
    FilterCriteria(query="PDF"),
    FilterCriteria(category="DevOps"),
    FilterCriteria(query="e", category="Document Processing"),
    FilterCriteria(query="  "),
    FilterCriteria(query="zzz-no-match"),
]


class TestScenarios:
    """The documented example catalog."""

    def test_query_matches_tag_and_name(self, scenario_catalog):
        """Test "git" finds the Git Helper only."""
        result = filter_items(scenario_catalog, FilterCriteria(query="git", category="All"))
        assert [i.id for i in result] == ["s1"]

    def test_category_only(self, scenario_catalog):
        """Test category narrowing with an empty query."""
        result = filter_items(scenario_catalog, FilterCriteria(query="", category="Document Processing"))
        assert [i.id for i in result] == ["s2"]

    def test_empty_catalog(self):
        """Test empty input gives empty output."""
        assert filter_items([], FilterCriteria(query="x")) == []


class TestLaws:
    """Identity, idempotence and membership properties over the bundled catalog."""

    @pytest.mark.parametrize("domain", list(Domain))
    def test_identity(self, domain):
        """Test All + empty query returns the catalog unchanged."""
        items = CatalogStore.default().items(domain)
        assert filter_items(items, FilterCriteria(query="", category="All")) == items

    @pytest.mark.parametrize("domain", list(Domain))
    @pytest.mark.parametrize("criteria", CRITERIA)
    def test_idempotent(self, domain, criteria):
        """Test filtering twice equals filtering once."""
        items = CatalogStore.default().items(domain)
        once = filter_items(items, criteria)
        assert filter_items(once, criteria) == once

    @pytest.mark.parametrize("domain", list(Domain))
    @pytest.mark.parametrize("criteria", CRITERIA)
    def test_order_preserved(self, domain, criteria):
        """Test results are a subsequence in catalog order."""
        items = CatalogStore.default().items(domain)
        result = filter_items(items, criteria)
        positions = [items.index(i) for i in result]
        assert positions == sorted(positions)

    @pytest.mark.parametrize("query", ["git", "PDF", "agent", "Review", "sql", "x"])
    def test_membership_rule(self, query):
        """Test inclusion iff query is in name, description or a tag."""
        items = CatalogStore.default().items(Domain.SKILLS)
        result = filter_items(items, FilterCriteria(query=query))
        q = query.lower()
        for item in items:
            expected = (
                q in item.name.lower()
                or q in item.description.lower()
                or any(q in t.lower() for t in item.tags)
            )
            assert (item in result) == expected


class TestSearch:
    """Tests for free-text matching."""

    def test_case_insensitive(self):
        """Test query and fields are compared lowercased."""
        skill = Skill(id="a", name="PDF Writer", description="Makes Documents", category="Testing")
        assert search_matches(skill, "pdf")
        assert search_matches(skill, "DOCUMENTS")

    def test_whitespace_query_is_empty(self):
        """Test surrounding whitespace is trimmed."""
        skill = Skill(id="a", name="Alpha", description="", category="Testing")
        assert search_matches(skill, "   ")
        assert search_matches(skill, "  alp  ")

    def test_inner_whitespace_kept(self):
        """Test whitespace inside the query is literal."""
        skill = Skill(id="a", name="PDF Writer", description="", category="Testing")
        assert search_matches(skill, "pdf w")
        assert not search_matches(skill, "pdf  w")

    def test_mcp_server_matches_author_not_tags(self):
        """Test servers search author instead of tags."""
        server = MCPServer(
            id="gh", name="GitHub", description="Repos", category="Developer Tools",
            tags=("issues",), author="octocat",
        )
        assert search_matches(server, "octo")
        assert not search_matches(server, "issues")


class TestFacets:
    """Tests for category and source facets."""

    def test_source_facet(self, plugins):
        """Test official/community narrowing."""
        official = filter_items(plugins, FilterCriteria(source=SourceFacet.OFFICIAL))
        community = filter_items(plugins, FilterCriteria(source="community"))
        assert [p.id for p in official] == ["p1"]
        assert [p.id for p in community] == ["p2", "p3"]

    def test_source_all_and_none(self, plugins):
        """Test "all" and no facet both keep everything."""
        assert filter_items(plugins, FilterCriteria(source="all")) == plugins
        assert filter_items(plugins, FilterCriteria()) == plugins

    def test_source_on_items_without_source(self, scenario_catalog):
        """Test a concrete facet excludes items that have no source."""
        assert not source_matches(scenario_catalog[0], SourceFacet.OFFICIAL)
        assert source_matches(scenario_catalog[0], SourceFacet.ALL)

    def test_all_facets_combined(self, plugins):
        """Test category, source and query are ANDed."""
        criteria = FilterCriteria(query="review", category="Development", source="community")
        assert [p.id for p in filter_items(plugins, criteria)] == ["p3"]

    def test_unknown_category_matches_nothing(self, plugins):
        """Test a category no item has yields an empty list."""
        assert filter_items(plugins, FilterCriteria(category="Nope")) == []

    def test_invalid_source_rejected(self):
        """Test an unknown facet value raises."""
        with pytest.raises(ValueError):
            FilterCriteria(source="paid")


class TestCounts:
    """Tests for facet counts."""

    def test_category_counts(self, plugins):
        """Test per-category counts with the All total."""
        counts = category_counts(plugins)
        assert counts["All"] == 3
        assert counts["Development"] == 2
        assert counts["Testing"] == 1

    def test_source_counts(self, plugins):
        """Test official/community split."""
        assert source_counts(plugins) == {"official": 1, "community": 2}
