import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from common.config import TICK_INTERVAL
from common.fetcher import download_image
from common.job_schema import ImageJob, ImageState
from common.storage import ImageStore

logger = logging.getLogger(__name__)


async def process_job(job: ImageJob, store: ImageStore, client: httpx.AsyncClient) -> None:
    """Downloads one dequeued job and files it in the completed registry, whatever the outcome."""
    job.state = ImageState.DOWNLOADING
    image_path = store.image_path(job.id)
    try:
        size = await download_image(client, job.source_url, image_path)
        job.state = ImageState.DOWNLOADED
        logger.info("Downloaded job %s (%d bytes) to %s", job.id, size, image_path)
    except Exception as e:
        job.state = ImageState.FAILED
        job.error = str(e)
        logger.error("Failed job %s from %s: %s", job.id, job.source_url, e)
    except asyncio.CancelledError:
        job.state = ImageState.FAILED
        job.error = "Cancelled"
        job.completed_at = datetime.now(timezone.utc)
        store.complete(job)
        logger.warning("Cancelled job %s mid-download", job.id)
        raise
    job.completed_at = datetime.now(timezone.utc)
    store.complete(job)


class DownloadWorker:
    """
    Drains the store one job per tick.

    Downloads never overlap: tick() awaits the whole download before the
    loop sleeps again, so at most one outbound fetch is open at a time.
    """

    def __init__(self, store: ImageStore, client: httpx.AsyncClient, interval: float = TICK_INTERVAL):
        self.store = store
        self.client = client
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> Optional[ImageJob]:
        """Processes at most one job. Returns it, or None if the queue was empty."""
        job = self.store.dequeue_next()
        if job is None:
            return None
        await process_job(job, self.store, self.client)
        return job

    async def _run(self) -> None:
        logger.info("Worker started (interval=%ss)", self.interval)
        while True:
            try:
                await self.tick()
            except Exception:
                # process_job already swallows download errors; this guards the loop itself.
                logger.exception("Worker tick crashed")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="download-worker")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Worker stopped")
