"""Declarative extraction: spec model and engine."""

from __future__ import annotations

from .extract import extract_data
from .spec import ExtractionSpec, FieldSpec, links_spec, parse_extraction_spec

__all__ = ["ExtractionSpec", "FieldSpec", "extract_data", "links_spec", "parse_extraction_spec"]
