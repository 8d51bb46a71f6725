import logging
import signal
import sys
import uvicorn

from .config import settings
from .storage import JsonFileStorage
from .progress import PlaybackProgressStore
from .clients.catalog_client import CatalogClient
from . import server

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
# Silence noisy libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger("main")

class ProgressService:
    def __init__(self):
        self.storage = JsonFileStorage(settings.PROGRESS_STORAGE_PATH)
        self.store = PlaybackProgressStore(self.storage)
        self.catalog = CatalogClient()

        # Link store and catalog to server module
        server.store = self.store
        server.catalog = self.catalog

    def start(self):
        records = self.store.get_all()
        logger.info(f"Loaded {len(records)} progress records from {settings.PROGRESS_STORAGE_PATH}")
        uvicorn.run(
            server.app,
            host=settings.HTTP_SERVER_HOST,
            port=settings.HTTP_SERVER_PORT,
            log_level="warning"
        )

def handle_sigterm(sig, frame):
    logger.info("Received SIGTERM, shutting down...")
    sys.exit(0)

if __name__ == "__main__":
    signal.signal(signal.SIGTERM, handle_sigterm)
    service = ProgressService()
    try:
        service.start()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
