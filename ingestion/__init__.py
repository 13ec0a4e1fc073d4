"""
Harvest engine components for TMDb metadata collection.

Modules:
    runner: Harvest orchestrator (run tracking, signals, people phase)
    coordinator: Strategy coordinator over (content type, query) pairs
    base: Abstract paginated fetch-and-store pipeline
    checkpoint: Resumable checkpoint state machine and its stores
    context: Run mode, result budget and statistics
    extras: Per-item enrichment fan-out
    concurrency: Bounded batch combinator and randomized delays

Subpackages:
    extractors: TMDb API client, website client and HTML extraction
    transformers: Mapping of source payloads to output records
    loaders: Record stores with idempotent upserts
    pipelines: API, website and people pipelines

Architecture:
    Each (content type, query) pair is collected by the API pipeline while
    the run is in API mode. A page-level API failure switches the run to
    website scraping for good, and the same pair continues there. Every
    processed listing page is checkpointed, so an interrupted run resumes
    at the page it stopped on.

Usage:
    from ingestion.runner import HarvestRunner
    from schemas.harvest import HarvestInput

    runner = HarvestRunner(HarvestInput.from_payload(payload), async_session_maker)
    stats = await runner.run()

    print(f"Collected {stats.contents} content items")

Error Handling:
    All components raise exceptions from core.exceptions. Item failures
    are logged and skipped; page failures trigger failover (API) or end
    pagination (website).
"""

__all__ = [
    "HarvestRunner",
    "HarvestCoordinator",
    "ContentPipeline",
    "CheckpointTracker",
    "RunContext",
    "ExtrasFanout",
    "TMDbApiClient",
    "TMDbWebClient",
    "RecordMapper",
    "SQLRecordStore",
]
