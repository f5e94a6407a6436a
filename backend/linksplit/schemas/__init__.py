"""Pydantic schemas for request/response validation."""
from linksplit.schemas.links import (
    CreateLinkRequest,
    EndTestRequest,
    LinkResponse,
    SaveTestsRequest,
)
from linksplit.schemas.variants import (
    PercentagesRequest,
    RemoveVariantRequest,
    SeedRequest,
    VariantPayload,
    VariantsRequest,
    VariantsResponse,
)

__all__ = [
    "CreateLinkRequest",
    "EndTestRequest",
    "LinkResponse",
    "SaveTestsRequest",
    "PercentagesRequest",
    "RemoveVariantRequest",
    "SeedRequest",
    "VariantPayload",
    "VariantsRequest",
    "VariantsResponse",
]
