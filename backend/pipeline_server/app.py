"""FastAPI server for the pipeline board."""

import logging

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pathlib import Path

from pipeline_server.config import get_config
from pipeline_server.errors import PipelineError, pipeline_error_handler
from pipeline_server.routes import router
from pipeline_server.websocket import websocket_endpoint

config = get_config()

logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="pipeline_board")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(PipelineError, pipeline_error_handler)

# Include API routes
app.include_router(router)

STATIC_DIR = Path(__file__).parent / "static"


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.websocket("/ws")
async def ws_route(websocket: WebSocket):
    """WebSocket endpoint for the record stream."""
    await websocket_endpoint(websocket)


# Serve the built board UI if present - mount last so API routes take precedence
if STATIC_DIR.exists():
    app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="static")


def main():
    import uvicorn

    logger.info("Serving pipeline board on %s:%d (data in %s)", config.host, config.port, config.data_dir)
    uvicorn.run("pipeline_server.app:app", host=config.host, port=config.port)


if __name__ == "__main__":
    main()
