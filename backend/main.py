import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dependencies import get_settings
from routes.calendar_data import router as calendar_data_router
from routes.edit_data import router as edit_data_router
from routes.user_data import router as user_data_router

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="moveo-webhooks")

app.include_router(user_data_router)
app.include_router(calendar_data_router)
app.include_router(edit_data_router)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
def health():
    return {"ok": True}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
