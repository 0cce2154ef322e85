import uvicorn
import threading
import asyncio
import app.settings as settings
from app.logger import configure_logging, worker_logger as logger
from app.workers.beatmaps import BeatmapWorker

# constants for the number of threads per worker type
BEATMAP_WORKER_THREADS = 1


def start_worker(worker_class):
    """Start a worker of the specified class in its own thread+event-loop."""
    def worker_thread():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        # create and initialize a WorkerState inside this thread's event loop
        from app.workers import WorkerState

        state = WorkerState()
        loop.run_until_complete(state.init())

        worker = worker_class(state)
        try:
            loop.run_until_complete(worker.run())
        finally:
            loop.run_until_complete(state.close())

    logger.info(f"Starting worker thread for {worker_class.__name__}")

    t = threading.Thread(target=worker_thread, daemon=True)
    t.start()

    return t


def main() -> int:
    configure_logging()

    for _ in range(BEATMAP_WORKER_THREADS):
        start_worker(BeatmapWorker)

    try:
        uvicorn.run(
            "app.api:app",
            host=settings.HOST,
            port=settings.PORT,
            reload=False,
            log_config=None,
        )
    except KeyboardInterrupt:
        logger.info("Shutting down workers...")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
