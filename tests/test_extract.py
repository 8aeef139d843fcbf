"""Tests for the nested extraction engine."""

from __future__ import annotations

import pytest
from conftest import FakeDocument, FakeElement, text_el

from stepwright.core.extractor.extract import extract_data
from stepwright.core.extractor.spec import FieldSpec, parse_extraction_spec


class TestLeafExtraction:
    @pytest.mark.asyncio
    async def test_one_record_per_match(self):
        doc = FakeDocument(children={"h3": [text_el("A"), text_el("B"), text_el("C")]})

        result = await extract_data(doc, parse_extraction_spec({"title": "h3"}))

        assert result == [{"title": "A"}, {"title": "B"}, {"title": "C"}]

    @pytest.mark.asyncio
    async def test_no_matches_yields_no_records(self):
        doc = FakeDocument(children={})

        result = await extract_data(doc, parse_extraction_spec({"title": "h3"}))

        assert result == []

    @pytest.mark.asyncio
    async def test_attribute_and_xpath(self):
        links = [
            FakeElement(props={"href": "https://a.test/1"}),
            FakeElement(props={"href": "https://a.test/2"}),
        ]
        doc = FakeDocument(children={"xpath=//a": links})
        spec = parse_extraction_spec({"link": {"xpath": "//a", "attribute": "href"}})

        result = await extract_data(doc, spec)

        assert result == [{"link": "https://a.test/1"}, {"link": "https://a.test/2"}]
        assert doc.queries == ["xpath=//a"]

    @pytest.mark.asyncio
    async def test_parallel_keys_align_by_position(self):
        doc = FakeDocument(
            children={
                ".name": [text_el("Ada"), text_el("Grace")],
                ".age": [text_el("36"), text_el("85"), text_el("41")],
            }
        )
        spec = parse_extraction_spec({"name": ".name", "age": ".age"})

        result = await extract_data(doc, spec)

        assert result == [
            {"name": "Ada", "age": "36"},
            {"name": "Grace", "age": "85"},
            {"age": "41"},
        ]

    @pytest.mark.asyncio
    async def test_regex_over_markup_is_case_insensitive(self):
        doc = FakeDocument(html="<p>Order ID-12, id-7 and Id-300</p>")
        spec = parse_extraction_spec({"ids": {"regex": r"id-\d+"}})

        result = await extract_data(doc, spec)

        assert result == [{"ids": "ID-12"}, {"ids": "id-7"}, {"ids": "Id-300"}]

    @pytest.mark.asyncio
    async def test_regex_over_text_source(self):
        doc = FakeDocument(html="<b>price</b>", text="Price: 10 EUR, 20 EUR")
        spec = parse_extraction_spec({"amount": {"regex": r"\d+ eur", "source": "text"}})

        result = await extract_data(doc, spec)

        assert result == [{"amount": "10 EUR"}, {"amount": "20 EUR"}]

    @pytest.mark.asyncio
    async def test_unresolvable_node_is_skipped(self):
        doc = FakeDocument(children={"h1": [text_el("Title")]})
        spec = {"broken": FieldSpec(), "title": FieldSpec(selector="h1")}

        result = await extract_data(doc, spec)

        assert result == [{"title": "Title"}]


class TestNestedExtraction:
    @pytest.mark.asyncio
    async def test_children_built_from_matching_parent_only(self):
        first = FakeElement(
            children={
                "h3": [text_el("First")],
                "xpath=.//a": [FakeElement(props={"href": "https://x.test/1"})],
            }
        )
        second = FakeElement(
            children={
                "h3": [text_el("Second")],
                "xpath=.//a": [FakeElement(props={"href": "https://x.test/2"})],
            }
        )
        doc = FakeDocument(children={"div.result": [first, second]})
        spec = parse_extraction_spec(
            {
                "result": {
                    "selector": "div.result",
                    "children": {
                        "link": {"xpath": ".//a", "attribute": "href"},
                        "title": "h3",
                    },
                }
            }
        )

        result = await extract_data(doc, spec)

        assert result == [
            {"result": {"link": "https://x.test/1", "title": "First"}},
            {"result": {"link": "https://x.test/2", "title": "Second"}},
        ]

    @pytest.mark.asyncio
    async def test_sibling_without_child_match_stays_empty(self):
        first = FakeElement(children={"h3": [text_el("Only")]})
        second = FakeElement(children={})
        doc = FakeDocument(children={"li": [first, second]})
        spec = parse_extraction_spec({"item": {"selector": "li", "children": {"title": "h3"}}})

        result = await extract_data(doc, spec)

        assert result == [{"item": {"title": "Only"}}, {"item": {}}]

    @pytest.mark.asyncio
    async def test_collision_collects_values_in_resolution_order(self):
        card = FakeElement(children={".tag": [text_el("red"), text_el("blue")]})
        doc = FakeDocument(children={".card": [card]})
        spec = parse_extraction_spec({"card": {"selector": ".card", "children": {"tag": ".tag"}}})

        result = await extract_data(doc, spec)

        assert result == [{"card": {"tag": ["red", "blue"]}}]

    @pytest.mark.asyncio
    async def test_collision_keeps_list_values_as_single_entries(self):
        card = FakeElement(
            children={".x": [FakeElement(props={"textContent": ["a", "b"]}), text_el("c")]}
        )
        doc = FakeDocument(children={".card": [card]})
        spec = parse_extraction_spec({"card": {"selector": ".card", "children": {"x": ".x"}}})

        result = await extract_data(doc, spec)

        assert result == [{"card": {"x": [["a", "b"], "c"]}}]

    @pytest.mark.asyncio
    async def test_nested_structural_matches_collapse_to_list(self):
        row = FakeElement(
            children={
                "td": [
                    FakeElement(children={"span": [text_el("1")]}),
                    FakeElement(children={"span": [text_el("2")]}),
                ]
            }
        )
        doc = FakeDocument(children={"tr": [row]})
        spec = parse_extraction_spec(
            {
                "row": {
                    "selector": "tr",
                    "children": {"cell": {"selector": "td", "children": {"value": "span"}}},
                }
            }
        )

        result = await extract_data(doc, spec)

        assert result == [{"row": {"cell": [{"value": "1"}, {"value": "2"}]}}]

    @pytest.mark.asyncio
    async def test_structural_node_without_target_scopes_to_current_element(self):
        doc = FakeDocument(children={"h1": [text_el("Heading")]})
        spec = parse_extraction_spec({"page": {"children": {"heading": "h1"}}})

        result = await extract_data(doc, spec)

        assert result == [{"page": {"heading": "Heading"}}]

    @pytest.mark.asyncio
    async def test_regex_inside_children_runs_against_child_markup(self):
        first = FakeElement(html='<div data-sku="SKU-1">...</div>')
        second = FakeElement(html='<div data-sku="SKU-2">sku-3</div>')
        doc = FakeDocument(children={".product": [first, second]})
        spec = parse_extraction_spec(
            {"product": {"selector": ".product", "children": {"sku": {"regex": r"sku-\d"}}}}
        )

        result = await extract_data(doc, spec)

        assert result == [
            {"product": {"sku": "SKU-1"}},
            {"product": {"sku": ["SKU-2", "sku-3"]}},
        ]
