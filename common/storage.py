import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Deque, List, Optional

# IMAGE_DIR is where the worker writes finished downloads.
from common.config import IMAGE_DIR

from common.job_schema import ImageDetails, ImageJob, ImageState


class Location(str, Enum):
    IN_QUEUE = "IN_QUEUE"
    COMPLETED = "COMPLETED"
    NOT_FOUND = "NOT_FOUND"


@dataclass
class Lookup:
    location: Location
    job: Optional[ImageJob] = None


def build_stored_url(scheme: str, host: str, port: int, job_id: str) -> str:
    """Public URL for a job's file: <scheme>://<host>:<port>/images/<id>.jpg"""
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"  # IPv6 literal
    return f"{scheme}://{host}:{port}/images/{job_id}.jpg"


def new_job(source_url: str, scheme: str, host: str, port: int) -> ImageJob:
    """Creates a QUEUED job with a fresh id. The stored_url is fixed here for good."""
    job_id = str(uuid.uuid4())
    return ImageJob(
        id=job_id,
        source_url=source_url,
        stored_url=build_stored_url(scheme, host, port, job_id),
        added_at=datetime.now(timezone.utc),
        state=ImageState.QUEUED,
    )


class ImageStore:
    """
    In-memory home of every ImageJob.

    A job lives in exactly one place: the pending queue, the in-flight slot
    (between dequeue_next and complete), or the completed registry.
    Nothing is persisted; everything is lost on restart.
    """

    def __init__(self, image_dir: Path = IMAGE_DIR):
        self.image_dir = Path(image_dir)
        self._pending: Deque[ImageJob] = deque()
        self._in_flight: Optional[ImageJob] = None
        self._completed: List[ImageJob] = []

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def enqueue(self, job: ImageJob) -> None:
        # ids are uuid4, so no duplicate check
        self._pending.append(job)

    def dequeue_next(self) -> Optional[ImageJob]:
        """Pops the head of the queue (FIFO), or returns None when it is empty."""
        if not self._pending:
            return None
        job = self._pending.popleft()
        self._in_flight = job
        return job

    def complete(self, job: ImageJob) -> None:
        self._completed.append(job)
        if self._in_flight is not None and self._in_flight.id == job.id:
            self._in_flight = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, job_id: str) -> Lookup:
        for job in self._pending:
            if job.id == job_id:
                return Lookup(Location.IN_QUEUE, job)
        # Being downloaded right now still reads as "on queue" from outside.
        if self._in_flight is not None and self._in_flight.id == job_id:
            return Lookup(Location.IN_QUEUE, self._in_flight)
        for job in self._completed:
            if job.id == job_id:
                return Lookup(Location.COMPLETED, job)
        return Lookup(Location.NOT_FOUND)

    def list_completed(self) -> List[ImageDetails]:
        return [ImageDetails.from_job(job) for job in self._completed]

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def completed_count(self) -> int:
        return len(self._completed)

    def image_path(self, job_id: str) -> Path:
        return self.image_dir / f"{job_id}.jpg"
