"""
Pydantic schemas for data validation and serialization.

This package defines Pydantic models for run input, harvested records
and HTTP responses:

Schemas:
    harvest: Harvest run input and the configuration derived from it
    records: Output records (content, credits, reviews, keywords, images,
             collection, person)
    api: API endpoint response schemas

Usage:
    from schemas.harvest import HarvestInput
    from schemas.records import ContentRecord
    from schemas.api import RecordsResponse, HealthCheckResponse

Example:
    # Validate a run input document
    harvest_input = HarvestInput.from_payload({"contentType": "movie", "resultsWanted": 10})

    assert harvest_input.requested_content_types == [ContentType.MOVIE]
    assert harvest_input.effective_queries == [None]  # discover mode

Validation:
    Invalid numeric input falls back to defaults with a warning; an
    invalid content type raises ConfigurationError.
"""

__all__ = [
    "HarvestInput",
    "ExtrasConfig",
    "DiscoverFilters",
    "DelayRange",
    "ContentRecord",
    "PersonRecord",
    "RecordsResponse",
    "HealthCheckResponse",
    "StatsResponse",
]
