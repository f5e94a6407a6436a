"""Editor session schemas for rebalancing test URLs."""
from pydantic import BaseModel, Field
from typing import List

from linksplit.services.variants import VariantSet


class VariantPayload(BaseModel):
    """One test URL and its share of traffic."""

    url: str = Field("", max_length=2048, description="Destination URL (empty while editing)")
    percentage: int = Field(..., ge=0, le=100, description="Share of traffic in percent")


class VariantsRequest(BaseModel):
    """Current test URLs of an editing session."""

    tests: List[VariantPayload] = Field(..., min_length=1)

    def to_variant_set(self) -> VariantSet:
        return VariantSet.of((t.url, t.percentage) for t in self.tests)

    class Config:
        json_schema_extra = {
            "example": {
                "tests": [
                    {"url": "https://example.com/a", "percentage": 50},
                    {"url": "https://example.com/b", "percentage": 50}
                ]
            }
        }


class RemoveVariantRequest(VariantsRequest):
    """Remove the test URL at `index`."""

    index: int = Field(..., ge=0)


class PercentagesRequest(VariantsRequest):
    """Replace every percentage at once (traffic split slider)."""

    percentages: List[int] = Field(..., min_length=1)


class SeedRequest(BaseModel):
    """Start an editing session from a link's destination."""

    url: str = Field(..., min_length=1, max_length=2048)


class VariantsResponse(BaseModel):
    """Rebalanced test URLs."""

    tests: List[VariantPayload]
    evenly_split: bool

    @classmethod
    def from_variant_set(cls, variant_set: VariantSet) -> "VariantsResponse":
        return cls(
            tests=[VariantPayload(url=v.url, percentage=v.percentage) for v in variant_set],
            evenly_split=variant_set.is_evenly_split()
        )
