"""Link and split test schemas."""
from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Dict, List, Optional

from linksplit.models.link import Link
from linksplit.schemas.variants import VariantPayload
from linksplit.services.lifecycle import TestConfig, TestDraft, label_for, state_of
from linksplit.services.variants import VariantSet


class SaveTestsRequest(BaseModel):
    """Start or edit a link's split test."""

    tests: List[VariantPayload] = Field(..., min_length=1)
    tests_complete_at: datetime = Field(..., description="When all traffic goes to the winner")

    def to_draft(self) -> TestDraft:
        return TestDraft(
            variants=VariantSet.of((t.url, t.percentage) for t in self.tests),
            complete_at=self.tests_complete_at
        )

    class Config:
        json_schema_extra = {
            "example": {
                "tests": [
                    {"url": "https://example.com/a", "percentage": 70},
                    {"url": "https://example.com/b", "percentage": 30}
                ],
                "tests_complete_at": "2026-11-02T12:00:00Z"
            }
        }


class CreateLinkRequest(BaseModel):
    """Create a short link, optionally with a split test."""

    key: str = Field(..., min_length=1, max_length=190, pattern=r"^[A-Za-z0-9_-]+$")
    url: str = Field(..., min_length=1, max_length=2048)
    tests: Optional[List[VariantPayload]] = None
    tests_complete_at: Optional[datetime] = None

    @model_validator(mode="after")
    def tests_need_completion_date(self):
        if (self.tests is None) != (self.tests_complete_at is None):
            raise ValueError("tests and tests_complete_at must be set together")
        return self

    def to_draft(self) -> Optional[TestDraft]:
        if self.tests is None:
            return None
        return SaveTestsRequest(
            tests=self.tests,
            tests_complete_at=self.tests_complete_at
        ).to_draft()


class EndTestRequest(BaseModel):
    """End a running test early."""

    winner_url: Optional[str] = Field(None, description="URL to keep; defaults to the leading URL")
    scores: Optional[Dict[str, float]] = Field(
        None, description="Performance per URL, used to pick the leader"
    )


class LinkResponse(BaseModel):
    """Link with its split test state."""

    key: str
    url: str
    tests: Optional[List[VariantPayload]] = None
    tests_started_at: Optional[datetime] = None
    tests_complete_at: Optional[datetime] = None
    test_state: str
    test_label: str

    @classmethod
    def from_link(cls, link: Link, config: TestConfig, now: datetime) -> "LinkResponse":
        return cls(
            key=link.key,
            url=link.url,
            tests=[VariantPayload(**t) for t in config.variants.to_list()] if config.has_test else None,
            tests_started_at=config.started_at,
            tests_complete_at=config.complete_at,
            test_state=state_of(config, now).value,
            test_label=label_for(config, now)
        )
