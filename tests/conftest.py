from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import pytest


def pytest_sessionstart(session):  # noqa: ARG001
    # Ensure src/ is importable when running pytest without installation
    root = Path(__file__).resolve().parents[1]
    src = root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))
    os.environ.setdefault("HEADLESS", "true")


class FakeElement:
    """Element handle double: answers selectors from a fixed lookup table.

    ``children`` maps a selector string (``xpath=...`` for XPath) to the
    elements it matches under this element. ``props`` holds DOM properties
    and attributes read by ``eval_on_selector_all``.
    """

    def __init__(
        self,
        props: dict[str, Any] | None = None,
        children: dict[str, list[FakeElement]] | None = None,
        html: str = "",
        text: str = "",
    ) -> None:
        self.props = props or {}
        self.children = children or {}
        self.html = html
        self.text = text
        self.queries: list[str] = []

    async def query_selector_all(self, target: str) -> list[FakeElement]:
        self.queries.append(target)
        return list(self.children.get(target, []))

    async def eval_on_selector_all(self, target: str, _js: str, attribute: str) -> list[Any]:
        self.queries.append(target)
        return [el.props.get(attribute) for el in self.children.get(target, [])]

    async def evaluate(self, js: str) -> str:
        return self.text if "innerText" in js else self.html


class FakeDocument(FakeElement):
    """Page-level double: exposes content() like a Playwright Page."""

    async def content(self) -> str:
        return self.html

    async def evaluate(self, js: str) -> str:
        return self.text


def text_el(value: str, **props: Any) -> FakeElement:
    return FakeElement(props={"textContent": value, **props})


class FakeLocator:
    def __init__(self, page: FakePage, target: str) -> None:
        self.page = page
        self.target = target

    @property
    def first(self) -> FakeLocator:
        return self

    async def click(self) -> None:
        self.page.events.append(("click", self.target))
        if self.target in self.page.fail_targets:
            raise RuntimeError(f"cannot click {self.target}")

    async def press_sequentially(self, text: str, delay: float = 0) -> None:
        self.page.events.append(("type", self.target, text, delay))


class FakePage:
    """Page double used by interpreter tests.

    ``documents`` maps a URL to the FakeDocument served once the page has
    navigated there; ``fail_urls`` makes ``goto`` raise for those URLs.
    """

    def __init__(
        self,
        url: str = "about:blank",
        documents: dict[str, FakeDocument] | None = None,
        events: list[tuple] | None = None,
        fail_urls: set[str] | None = None,
        fail_targets: set[str] | None = None,
        name: str = "page",
    ) -> None:
        self.url = url
        self.documents = documents or {}
        self.events = events if events is not None else []
        self.fail_urls = fail_urls or set()
        self.fail_targets = fail_targets or set()
        self.name = name
        self.closed = False
        self.history: list[str] = [url]

    @property
    def document(self) -> FakeDocument:
        return self.documents.get(self.url, FakeDocument())

    def locator(self, target: str) -> FakeLocator:
        return FakeLocator(self, target)

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.events.append(("goto", self.name, url, kwargs))
        if url in self.fail_urls:
            raise RuntimeError(f"navigation to {url} failed")
        self.url = url
        self.history.append(url)

    async def go_back(self, **kwargs: Any) -> None:
        self.events.append(("back", self.name, kwargs))

    async def go_forward(self, **kwargs: Any) -> None:
        self.events.append(("forward", self.name, kwargs))

    async def screenshot(self, path: str, full_page: bool = False) -> None:
        self.events.append(("screenshot", self.name, path, full_page))
        Path(path).write_bytes(b"\x89PNG")

    async def query_selector_all(self, target: str) -> list[FakeElement]:
        return await self.document.query_selector_all(target)

    async def eval_on_selector_all(self, target: str, js: str, attribute: str) -> list[Any]:
        return await self.document.eval_on_selector_all(target, js, attribute)

    async def content(self) -> str:
        return self.document.html

    async def evaluate(self, js: str) -> str:
        return self.document.text

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def events() -> list[tuple]:
    return []
