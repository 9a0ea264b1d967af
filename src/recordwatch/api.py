"""REST API for controlling the recording watcher."""

import logging
import threading
from datetime import datetime
from typing import Any, Optional

from fastapi import FastAPI, HTTPException

from .exceptions import FolderNotFoundError
from .pipeline import RecordWatchPipeline

logger = logging.getLogger(__name__)


def create_app(pipeline: RecordWatchPipeline) -> FastAPI:
    app = FastAPI(title="RecordWatch API")

    @app.post("/api/filewatcher/start")
    def start():
        try:
            pipeline.start()
        except FolderNotFoundError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"message": "File monitor started."}

    @app.post("/api/filewatcher/stop")
    def stop():
        pipeline.stop()
        return {"message": "File monitor stopped."}

    @app.post("/api/filewatcher/collect-wav-files")
    def collect(from_time: Optional[datetime] = None, to_time: Optional[datetime] = None):
        found, ingested = pipeline.collect(from_time, to_time)
        if found == 0:
            raise HTTPException(status_code=404, detail="No WAV files found.")
        return {
            "message": f"{found} WAV files have been saved to the database.",
            "found": found,
            "ingested": ingested,
        }

    @app.get("/api/filewatcher/status")
    def status():
        return pipeline.status()

    return app


class RecordWatchAPIService:
    """Wrapper to run the FastAPI server via uvicorn in a background thread."""

    def __init__(self, host: str, port: int, pipeline: RecordWatchPipeline):
        self.host = host
        self.port = port
        self.pipeline = pipeline
        self._thread: Optional[threading.Thread] = None
        self._server: Any = None

    def start(self) -> None:
        import uvicorn

        config = uvicorn.Config(
            create_app(self.pipeline),
            host=self.host,
            port=self.port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)

        self._thread = threading.Thread(target=self._server.run, daemon=True)
        self._thread.start()
        logger.info(f"API listening on http://{self.host}:{self.port}")

    def stop(self) -> None:
        if self._server:
            self._server.should_exit = True
            self._server = None
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
