"""FastAPI application exposing the analytics reports."""

import logging
from typing import Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cafe_analytics.api.routes import router as api_router
from cafe_analytics.config.supabase_client import LOG_LEVEL
from cafe_analytics.services.periods import InvalidGranularity

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Cafe Analytics")
app.include_router(api_router)


@app.exception_handler(InvalidGranularity)
async def invalid_granularity_handler(request: Request, exc: InvalidGranularity) -> JSONResponse:
    logger.error("Rejected report request %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("cafe_analytics.main:app", host="127.0.0.1", port=8000, reload=True)
