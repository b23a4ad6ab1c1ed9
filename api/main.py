import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import httpx
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse

from common.config import FETCH_TIMEOUT, PORT, TICK_INTERVAL, configure_logging
from common.errors import MissingInput, ValidationRejected
from common.fetcher import validate_image_url
from common.job_schema import (
    ImageDetails,
    ImageState,
    ImageSubmitRequest,
    ImageSubmitResponse,
    MessageResponse,
)
from common.storage import ImageStore, Location, new_job
from worker.worker import DownloadWorker

logger = logging.getLogger(__name__)

MSG_ON_QUEUE = "Image is on queue"
MSG_NOT_FOUND = "Image not found"
MSG_DOWNLOADED = "Image was downloaded"
MSG_FAILED = "Image download failed"

router = APIRouter()


# ---------- API endpoints ----------

@router.get("/images", response_model=List[ImageDetails])
async def list_images(request: Request):
    store: ImageStore = request.app.state.store
    return store.list_completed()


# Must be registered before /images/{image_id}, which would otherwise match "<id>.jpg".
@router.get("/images/{image_id}.jpg")
async def get_image_file(image_id: str, request: Request):
    store: ImageStore = request.app.state.store
    path = store.image_path(image_id)
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Image file missing")
    return FileResponse(path, media_type="image/jpeg")


@router.get("/images/{image_id}", response_model=MessageResponse)
async def get_image_status(image_id: str, request: Request):
    store: ImageStore = request.app.state.store
    found = store.find_by_id(image_id)
    if found.location == Location.IN_QUEUE:
        return MessageResponse(message=MSG_ON_QUEUE)
    if found.location == Location.NOT_FOUND:
        return MessageResponse(message=MSG_NOT_FOUND)
    if found.job.state == ImageState.FAILED:
        return MessageResponse(message=MSG_FAILED)
    return MessageResponse(message=MSG_DOWNLOADED)


@router.post("/images", response_model=ImageSubmitResponse)
async def submit_image(request: Request, body: Optional[ImageSubmitRequest] = None):
    url = body.url if body else None
    if not url:
        raise MissingInput()

    # Blocks this request (only) until the remote headers arrive.
    await validate_image_url(request.app.state.http_client, url)

    store: ImageStore = request.app.state.store
    job = new_job(url, request.url.scheme, request.url.hostname, request.app.state.port)
    store.enqueue(job)
    logger.info("Queued job %s for %s", job.id, url)
    return ImageSubmitResponse(url=job.stored_url.removesuffix(".jpg"))


# ---------- Error mapping ----------

async def _missing_input_handler(request: Request, exc: MissingInput):
    return JSONResponse(status_code=400, content={"message": str(exc)})


async def _rejected_handler(request: Request, exc: ValidationRejected):
    return JSONResponse(status_code=409, content={"message": str(exc)})


# ---------- App factory ----------

def create_app(
    store: Optional[ImageStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    start_worker: bool = True,
    tick_interval: float = TICK_INTERVAL,
    port: int = PORT,
) -> FastAPI:
    """
    Builds the API. The store, the outbound client and the worker are owned
    by the app and shared through app.state; tests pass their own store and
    a MockTransport-backed client and drive worker ticks by hand.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        owns_client = http_client is None
        client = http_client or httpx.AsyncClient(timeout=FETCH_TIMEOUT)
        app.state.http_client = client
        app.state.worker = DownloadWorker(app.state.store, client, interval=tick_interval)
        if start_worker:
            app.state.worker.start()
        logger.info("--------------------------------")
        logger.info("Server listening on port %s", port)
        logger.info("--------------------------------")
        yield
        await app.state.worker.stop()
        if owns_client:
            await client.aclose()

    app = FastAPI(title="Image Fetch Queue", lifespan=lifespan)
    app.state.store = store or ImageStore()
    app.state.port = port
    app.include_router(router)
    app.add_exception_handler(MissingInput, _missing_input_handler)
    app.add_exception_handler(ValidationRejected, _rejected_handler)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
