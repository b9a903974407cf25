"""
Report API entry point: `python main.py` or `uvicorn main:app`.
"""
import logging
import time

import uvicorn
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from treeherder_cli.api.report import router as report_router
from treeherder_cli.core import config
from treeherder_cli.utils.logging_config import setup_logging

setup_logging(level=logging.INFO)
logger = logging.getLogger("main")

RESPONSE_TIME_HEADER = "X-Response-Time-Ms"

app = FastAPI(title="Treeherder Results API")


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Logs each report request with its query and stamps the elapsed time on the response."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("%s %s crashed", request.method, target)
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers[RESPONSE_TIME_HEADER] = f"{elapsed_ms:.1f}"
        logger.info("%s %s -> %d (%.1f ms)", request.method, target, response.status_code, elapsed_ms)
        return response


app.add_middleware(RequestTimingMiddleware)


@app.get("/health")
async def health_check():
    return {"status": "ok"}


app.include_router(report_router)

if __name__ == "__main__":
    uvicorn.run("main:app", host=config.API_HOST, port=config.API_PORT)
