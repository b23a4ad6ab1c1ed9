import logging
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]

# Port the API listens on; also baked into every stored_url
PORT = int(os.getenv("PORT", "1235"))

# Where downloaded images land: <IMAGE_DIR>/<id>.jpg
IMAGE_DIR = Path(os.getenv("IMAGE_DIR", str(BASE_DIR / "data" / "images")))

TICK_INTERVAL = float(os.getenv("TICK_INTERVAL", "1.0"))  # seconds
FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "30"))  # seconds

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Ensure dirs exist
IMAGE_DIR.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
