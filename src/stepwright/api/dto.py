from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _StepModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


def _one_target(selector: str | None, xpath: str | None, action: str) -> None:
    if bool(selector) == bool(xpath):
        raise ValueError(f"{action} needs exactly one of 'selector' or 'xpath'")


class WaitDocument(_StepModel):
    action: Literal["wait"] | None = None
    for_: str = Field(..., alias="for", description="Condition kind, e.g. navigation or selector")
    selector: str | None = None
    xpath: str | None = None
    state: str | None = Field(None, description="attached|detached|visible|hidden")
    visible: bool | None = None
    hidden: bool | None = None
    timeout: float | None = Field(None, ge=0, description="Milliseconds")
    wait_until: str | None = Field(None, alias="waitUntil")
    url: str | None = Field(
        None, description="Request/response URL: Playwright glob, or 're:' regex"
    )
    function: str | None = Field(None, description="JS expression or function source")
    args: list[Any] = Field(default_factory=list)
    polling: float | str | None = None


class ClickStep(_StepModel):
    action: Literal["click"]
    selector: str | None = None
    xpath: str | None = None
    wait: WaitDocument | None = Field(None, description="Wait started together with the click")
    wait_for: str | None = Field(None, alias="waitFor", description="Shorthand for wait.for")

    @model_validator(mode="after")
    def _check(self) -> ClickStep:
        _one_target(self.selector, self.xpath, "click")
        if self.wait is not None and self.wait_for:
            raise ValueError("click accepts 'wait' or 'waitFor', not both")
        return self


class TypeStep(_StepModel):
    action: Literal["type"]
    text: str
    selector: str | None = None
    xpath: str | None = None
    delay: float = Field(0, ge=0, description="Milliseconds between key presses")

    @model_validator(mode="after")
    def _check(self) -> TypeStep:
        _one_target(self.selector, self.xpath, "type")
        return self


class GoStep(_StepModel):
    action: Literal["go"]
    to: str = Field(..., min_length=1, description="'back', 'forward' or a URL")
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] | None = Field(
        None, alias="waitUntil"
    )
    timeout: float | None = Field(None, ge=0)


class WaitStep(WaitDocument):
    action: Literal["wait"]


class ScrapeStep(_StepModel):
    action: Literal["scrape"]
    data: dict[str, Any] = Field(..., description="Extraction spec")
    path: str = Field(..., min_length=1, description="Output JSON path; $i is the iteration index")


class ScreenshotStep(_StepModel):
    action: Literal["screenshot"]
    path: str = Field(..., min_length=1, description="Output image path; $i is the iteration index")
    full_page: bool = Field(False, alias="fullPage")


class RepeatStep(_StepModel):
    action: Literal["repeat"]
    times: int = Field(0, description="0 or omitted means 10")
    sub_steps: list[StepDocument] = Field(default_factory=list, alias="subSteps")


class CrawlStep(_StepModel):
    action: Literal["crawl"]
    selector: str | None = None
    xpath: str | None = None
    attribute: str = "href"
    sub_steps: list[StepDocument] = Field(default_factory=list, alias="subSteps")

    @model_validator(mode="after")
    def _check(self) -> CrawlStep:
        _one_target(self.selector, self.xpath, "crawl")
        return self


StepDocument = Annotated[
    Union[
        ClickStep, TypeStep, GoStep, WaitStep, ScrapeStep, ScreenshotStep, RepeatStep, CrawlStep
    ],
    Field(discriminator="action"),
]


class AutomationConfigDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: str = Field(..., min_length=1, description="Page opened before the first step")
    headless: bool | None = Field(None, description="Defaults to the HEADLESS setting")
    default_timeout: float | None = Field(None, ge=0, alias="defaultTimeout")
    default_navigation_timeout: float | None = Field(None, ge=0, alias="defaultNavigationTimeout")
    max_pages: int = Field(1, ge=1, alias="maxPages")
    keep_open_after: bool | int = Field(
        False,
        alias="keepOpenAfter",
        description="false/0: close at once; N: close after N ms; true: until the browser is closed",
    )
    steps: list[StepDocument] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check(self) -> AutomationConfigDocument:
        if not isinstance(self.keep_open_after, bool) and self.keep_open_after < 0:
            raise ValueError("keepOpenAfter must be a boolean or a non-negative integer")
        return self


RepeatStep.model_rebuild()
CrawlStep.model_rebuild()
AutomationConfigDocument.model_rebuild()
