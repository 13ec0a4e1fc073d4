# ============================================================================
# File: ingestion/runner.py
# Description: Harvest orchestrator with run tracking and graceful shutdown
# ============================================================================
"""
Harvest Runner - Orchestrates one harvest invocation.

This module provides:
- Checkpoint loading and resume of an interrupted run
- Content phase (API first, web fallback) followed by the people phase
- HarvestRun metrics tracking
- SIGINT/SIGTERM handling that persists the checkpoint before exiting
"""

import asyncio
import signal
import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
import logging

from models.base import RunStatus
from models.harvest_run import HarvestRun
from schemas.harvest import HarvestInput
from ingestion.checkpoint import CheckpointStore, CheckpointTracker, SQLCheckpointStore
from ingestion.context import RunContext, RunStats
from ingestion.coordinator import HarvestCoordinator
from ingestion.extractors.tmdb_api import TMDbApiClient
from ingestion.extractors.tmdb_web import TMDbWebClient, ProxyRotator
from ingestion.loaders.record_store import RecordStore, SQLRecordStore
from ingestion.pipelines.people_pipeline import PeoplePipeline
from core.config import settings
from core.exceptions import HarvestException

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class HarvestRunner:
    """
    Run a harvest end to end.

    Responsibilities:
    - Restore checkpoint state and the consumed result budget
    - Coordinate content collection and people collection
    - Clear the checkpoint only after full completion
    - Record a HarvestRun row with final status and counters
    """

    def __init__(
        self,
        harvest_input: HarvestInput,
        session_maker: async_sessionmaker,
        checkpoint_store: Optional[CheckpointStore] = None,
        record_store: Optional[RecordStore] = None,
        api_client: Optional[TMDbApiClient] = None,
        web_client: Optional[TMDbWebClient] = None
    ):
        self.input = harvest_input
        self.session_maker = session_maker
        self.checkpoint_store = checkpoint_store or SQLCheckpointStore(session_maker, settings.CHECKPOINT_SLOT)
        self._record_store = record_store
        self._api_client = api_client
        self._web_client = web_client

        self.tracker: Optional[CheckpointTracker] = None
        self.context: Optional[RunContext] = None
        self.harvest_run: Optional[HarvestRun] = None
        self.interrupted = False
        self._main_task: Optional[asyncio.Task] = None
        self._shutdown_task: Optional[asyncio.Future] = None

    # ------------------------------------------------------------------
    # Client construction
    # ------------------------------------------------------------------

    def _build_api_client(self) -> Optional[TMDbApiClient]:
        if self._api_client is not None:
            return self._api_client
        api_key = self.input.active_api_key
        if not api_key:
            return None
        return TMDbApiClient(api_key, timeout=self.input.request_timeout_secs)

    def _build_web_client(self) -> TMDbWebClient:
        if self._web_client is not None:
            return self._web_client
        return TMDbWebClient(
            proxy_rotator=ProxyRotator.from_urls(self.input.effective_proxy_urls),
            timeout=self.input.request_timeout_secs,
        )

    # ------------------------------------------------------------------
    # Run tracking
    # ------------------------------------------------------------------

    async def _start_harvest_run(self) -> HarvestRun:
        harvest_run = HarvestRun(
            run_id=uuid.uuid4(),
            status=RunStatus.RUNNING,
            initial_mode=self.context.mode,
            resumed=self.tracker.resumed,
            started_at=datetime.utcnow(),
            config_snapshot=self.input.snapshot(),
            checkpoint_slot=getattr(self.checkpoint_store, "slot", None),
        )
        async with self.session_maker() as session:
            session.add(harvest_run)
            await session.commit()
        logger.info(f"Started harvest run {harvest_run.run_id}")
        return harvest_run

    async def _finish_harvest_run(self, status: RunStatus, error_message: Optional[str] = None) -> None:
        if self.harvest_run is None:
            return
        stats = self.context.stats
        completed_at = datetime.utcnow()
        async with self.session_maker() as session:
            harvest_run = await session.get(HarvestRun, self.harvest_run.id)
            harvest_run.status = status
            harvest_run.final_mode = self.context.mode
            harvest_run.completed_at = completed_at
            harvest_run.duration_seconds = (completed_at - harvest_run.started_at).total_seconds()
            harvest_run.contents_collected = stats.contents
            harvest_run.extra_items_collected = stats.extra_items
            harvest_run.items_failed = stats.items_failed
            harvest_run.api_failures = stats.api_failures
            harvest_run.error_message = error_message
            await session.commit()
        self.harvest_run.status = status

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in HANDLED_SIGNALS:
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError):
                logger.debug(f"Signal handler for {sig.name} not supported on this platform")

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in HANDLED_SIGNALS:
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass

    def _on_signal(self, sig: signal.Signals) -> None:
        if self.interrupted:
            return
        logger.warning(f"Received {sig.name}, saving state and shutting down")
        self.interrupted = True
        self._shutdown_task = asyncio.ensure_future(self._shutdown())

    async def _shutdown(self) -> None:
        try:
            await self.tracker.persist()
        except HarvestException as e:
            logger.error(f"Failed to save state on shutdown: {e.message}", extra={"error_context": e.to_dict()})
        if self._main_task is not None:
            self._main_task.cancel()

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def run_people(self, api_client: Optional[TMDbApiClient], store: RecordStore) -> None:
        if not self.input.collects_people:
            return
        if api_client is None:
            logger.warning("People collection requires a TMDb API key. Skipping people data.")
            return

        queries = self.input.person_queries
        pipeline = PeoplePipeline(
            api_client,
            store,
            self.input.delay_range(),
            self.context.stats,
            on_page=self.tracker.record_people_page,
        )

        start = self.tracker.people_resume_index(queries)
        for index in range(start, len(queries)):
            query = queries[index]
            cp = self.tracker.checkpoint
            if index == start and self.tracker.is_resuming_people(query):
                start_page, already_collected = cp.people_page, cp.people_collected
            else:
                await self.tracker.enter_people_query(query)
                start_page, already_collected = 1, 0

            limit = self.input.people_results_wanted - already_collected
            if limit <= 0:
                continue
            logger.info(f'Collecting people data for "{query}"')
            await pipeline.run(query, limit, start_page)

    async def run(self) -> RunStats:
        """
        Execute the harvest.

        Returns:
            Final run statistics

        Raises:
            asyncio.CancelledError: The run was interrupted by a signal
                (``interrupted`` is set) or cancelled by the caller
            HarvestException: Checkpoint or run tracking failures
        """
        self._main_task = asyncio.current_task()
        self.tracker = await CheckpointTracker.load(self.checkpoint_store)

        api_client = self._build_api_client()
        web_client = self._build_web_client()
        store = self._record_store

        api_available = (
            api_client is not None
            and self.input.use_api_first
            and self.tracker.checkpoint.api_available
        )
        self.context = RunContext(self.input.max_results, api_available)
        if self.tracker.resumed:
            self.context.restore_consumed(self.tracker.checkpoint.collected_total)

        if self.input.extras_config().any_requested and api_client is None:
            logger.warning(
                "Credits, reviews, images and collections require a TMDb API key. "
                "Without one only keywords can be collected, from the website detail pages."
            )
        if not self.input.search_queries and not self.input.genre_ids and not (self.input.year_from or self.input.year_to):
            if self.input.requested_content_types:
                logger.info("Running in discover mode without filters. Will collect popular content.")

        self.harvest_run = await self._start_harvest_run()
        if store is None:
            store = SQLRecordStore(self.session_maker, harvest_run_id=self.harvest_run.id)

        coordinator = HarvestCoordinator(
            self.input, store, self.tracker, self.context, web_client, api_client
        )

        self._install_signal_handlers()
        try:
            await coordinator.run()
            await self.run_people(api_client, store)

            stats = self.context.stats
            if stats.contents == 0 and self.input.requested_content_types:
                logger.warning(
                    "No content items were collected. This might indicate an issue with the "
                    "input configuration or TMDb availability."
                )

            await self.tracker.complete()
            status = RunStatus.SUCCESS if stats.items_failed == 0 and stats.api_failures == 0 else RunStatus.PARTIAL
            await self._finish_harvest_run(status)

            logger.info(
                f"Completed successfully! Collected {stats.contents} content items "
                f"and {stats.extra_items} auxiliary records."
            )
            logger.info(
                f"Harvest finished: mode={stats.mode}, final_mode={self.context.mode.value}, "
                f"api_failures={stats.api_failures}, items_failed={stats.items_failed}"
            )
            return stats

        except asyncio.CancelledError:
            await self._finish_harvest_run(RunStatus.INTERRUPTED, "Interrupted by signal" if self.interrupted else "Cancelled")
            logger.warning("Harvest interrupted; state saved for resume")
            raise

        except Exception as e:
            message = e.message if isinstance(e, HarvestException) else str(e)
            logger.exception("Harvest failed")
            await self._finish_harvest_run(RunStatus.FAILED, message)
            raise

        finally:
            self._remove_signal_handlers()
            if self._api_client is None and api_client is not None:
                await api_client.aclose()
            if self._web_client is None:
                await web_client.aclose()
