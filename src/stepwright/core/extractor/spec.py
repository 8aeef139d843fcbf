"""Extraction spec model.

A spec is an ordered mapping of result keys to field specs. A field spec is
either a leaf (exactly one of selector, xpath or regex) or a structural node
whose children are resolved against each element it matches.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from ...errors import ExtractionSpecError

DEFAULT_ATTRIBUTE = "textContent"
REGEX_SOURCES = ("html", "text")


@dataclass(frozen=True)
class FieldSpec:
    selector: str | None = None
    xpath: str | None = None
    regex: str | None = None
    attribute: str = DEFAULT_ATTRIBUTE
    source: str = "html"  # html|text, only used by regex leaves
    children: dict[str, FieldSpec] = field(default_factory=dict)

    @property
    def is_structural(self) -> bool:
        return bool(self.children)

    @property
    def target(self) -> str | None:
        """Selector string understood by the driver, xpath prefixed."""
        if self.selector:
            return self.selector
        if self.xpath:
            return f"xpath={self.xpath}"
        return None

    @property
    def is_resolvable(self) -> bool:
        return self.is_structural or bool(self.selector or self.xpath or self.regex)


ExtractionSpec = dict[str, FieldSpec]


def parse_extraction_spec(data: Mapping[str, Any], path: str = "data") -> ExtractionSpec:
    """Validate a raw spec mapping and build FieldSpecs, keeping key order.

    Raises:
        ExtractionSpecError: if a node is neither a string nor a mapping, a leaf
            sets zero or several of selector/xpath/regex, or a regex is invalid.
    """
    if not isinstance(data, Mapping):
        raise ExtractionSpecError(f"{path}: expected a mapping, got {type(data).__name__}")

    spec: ExtractionSpec = {}
    for key, value in data.items():
        if not isinstance(key, str) or not key:
            raise ExtractionSpecError(f"{path}: keys must be non-empty strings")
        spec[key] = _parse_field(value, f"{path}.{key}")
    return spec


def _parse_field(value: Any, path: str) -> FieldSpec:
    if isinstance(value, str):
        if not value.strip():
            raise ExtractionSpecError(f"{path}: selector shorthand is empty")
        return FieldSpec(selector=value)

    if not isinstance(value, Mapping):
        raise ExtractionSpecError(
            f"{path}: expected a selector string or a mapping, got {type(value).__name__}"
        )

    unknown = set(value) - {"selector", "xpath", "regex", "attribute", "source", "children"}
    if unknown:
        raise ExtractionSpecError(f"{path}: unknown fields {sorted(unknown)}")

    selector = _optional_str(value, "selector", path)
    xpath = _optional_str(value, "xpath", path)
    regex = _optional_str(value, "regex", path)
    attribute = _optional_str(value, "attribute", path) or DEFAULT_ATTRIBUTE
    source = _optional_str(value, "source", path) or "html"

    raw_children = value.get("children")
    if raw_children:
        # Structural node: own regex/attribute/source are ignored
        if selector and xpath:
            raise ExtractionSpecError(f"{path}: set either selector or xpath, not both")
        children = parse_extraction_spec(raw_children, f"{path}.children")
        return FieldSpec(selector=selector, xpath=xpath, children=children)

    targets = [name for name, v in (("selector", selector), ("xpath", xpath), ("regex", regex)) if v]
    if len(targets) != 1:
        found = ", ".join(targets) if targets else "none"
        raise ExtractionSpecError(
            f"{path}: a leaf needs exactly one of selector, xpath or regex (found: {found})"
        )

    if regex:
        if source not in REGEX_SOURCES:
            raise ExtractionSpecError(
                f"{path}: source must be one of {', '.join(REGEX_SOURCES)}, got {source!r}"
            )
        try:
            re.compile(regex, re.IGNORECASE)
        except re.error as e:
            raise ExtractionSpecError(f"{path}: invalid regex {regex!r}: {e}") from e

    return FieldSpec(selector=selector, xpath=xpath, regex=regex, attribute=attribute, source=source)


def _optional_str(value: Mapping[str, Any], name: str, path: str) -> str | None:
    raw = value.get(name)
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ExtractionSpecError(f"{path}.{name}: expected a string, got {type(raw).__name__}")
    return raw or None


def links_spec(selector: str | None, xpath: str | None, attribute: str) -> ExtractionSpec:
    """Single-key spec used by crawl steps to discover link targets."""
    return {"links": FieldSpec(selector=selector, xpath=xpath, attribute=attribute)}
