"""Nested DOM extraction against a live page or element.

The spec tree is walked with an explicit FIFO worklist. Result records live in
an arena and refer to nested records by index, so branches that write into the
same parent never share live dict references while the walk is in progress.
Records are materialized into plain dicts once the worklist is drained.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass
from typing import Any

from ...adapters.playwright import query_all, read_all, serialize
from .spec import ExtractionSpec, FieldSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Ref:
    """Pointer to a nested record in the arena."""

    index: int


@dataclass
class _Task:
    element: Any
    key: str
    spec: FieldSpec
    slot: int | None  # parent record index; None means top-level by position


class _RecordArena:
    def __init__(self) -> None:
        self.records: list[dict[str, Any]] = []
        self.roots: list[int] = []
        self._collided: set[tuple[int, str]] = set()

    def new(self) -> int:
        self.records.append({})
        return len(self.records) - 1

    def root(self, position: int) -> int:
        while len(self.roots) <= position:
            self.roots.append(self.new())
        return self.roots[position]

    def assign(self, slot: int, key: str, value: Any) -> None:
        record = self.records[slot]
        if key not in record:
            record[key] = value
        elif (slot, key) in self._collided:
            record[key].append(value)
        else:
            record[key] = [record[key], value]
            self._collided.add((slot, key))

    def materialize(self, value: Any) -> Any:
        if isinstance(value, _Ref):
            return {k: self.materialize(v) for k, v in self.records[value.index].items()}
        if isinstance(value, list):
            return [self.materialize(v) for v in value]
        return value

    def results(self) -> list[dict[str, Any]]:
        return [self.materialize(_Ref(index)) for index in self.roots]


async def extract_data(root: Any, spec: ExtractionSpec) -> list[dict[str, Any]]:
    """Resolve ``spec`` against ``root`` (a page or element handle).

    Returns one record per matched element of the first level that produced
    values. Values collected several times under one key within the same
    record are collapsed into a list in resolution order.
    """
    arena = _RecordArena()
    queue: deque[_Task] = deque(_Task(root, key, node, None) for key, node in spec.items())

    while queue:
        task = queue.popleft()
        node = task.spec

        if not node.is_resolvable:
            logger.warning("Extraction key %r has no selector, xpath or regex; skipped", task.key)
            continue

        if node.is_structural:
            target = node.target
            matches = await query_all(task.element, target) if target else [task.element]
            for position, element in enumerate(matches):
                slot = task.slot if task.slot is not None else arena.root(position)
                nested = arena.new()
                arena.assign(slot, task.key, _Ref(nested))
                for child_key, child in node.children.items():
                    queue.append(_Task(element, child_key, child, nested))
            continue

        values = await _resolve_leaf(task.element, node)
        for position, value in enumerate(values):
            slot = task.slot if task.slot is not None else arena.root(position)
            arena.assign(slot, task.key, value)

    return arena.results()


async def _resolve_leaf(element: Any, node: FieldSpec) -> list[Any]:
    if node.regex:
        content = await serialize(element, node.source)
        return [m.group(0) for m in re.finditer(node.regex, content or "", re.IGNORECASE)]
    return await read_all(element, node.target, node.attribute)
