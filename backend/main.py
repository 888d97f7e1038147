from dotenv import load_dotenv

# Load environment variables before config is read
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from huequery import __version__
from huequery.api.v1 import router as api_router
from huequery.config import config
from huequery.utils.logging import get_logger

log = get_logger()

app = FastAPI(
    title="HueQuery Backend",
    description="Maps free-text queries to a single representative color",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins(),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"]
)

app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    log.log_startup(config.PORT, config.WEIGHT_POLICY, bool(config.GEMINI_API_KEY))
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
