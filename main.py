import argparse
import logging
import uvicorn
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.responses import PlainTextResponse, RedirectResponse
from contextlib import asynccontextmanager

import sys
from pathlib import Path

# Add project root to path for package imports
base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from db.database import init_db
from config import load_config, CONFIG_DIR
from routes import auth_router, study_router, cards_router

logger = logging.getLogger(__name__)


# First-run init
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: init DB and config
    load_config()  # Ensures config exists
    init_db()
    yield


app = FastAPI(title="StudyCards", description="Spaced-repetition flashcards", lifespan=lifespan)

app.mount("/static", StaticFiles(directory=str(base_dir / "static")), name="static")

# Include routers
app.include_router(auth_router, tags=["auth"])
app.include_router(study_router, tags=["study"])
app.include_router(cards_router, tags=["cards"])


@app.exception_handler(401)
async def unauthorized_handler(request: Request, exc):
    """Send signed-out browsers to the login page; HTMX requests get an HX-Redirect."""
    if request.headers.get("HX-Request"):
        return PlainTextResponse("Login required", status_code=401, headers={"HX-Redirect": "/login"})
    if request.method == "GET":
        return RedirectResponse(url="/login", status_code=303)
    return PlainTextResponse("Login required", status_code=401)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    parser = argparse.ArgumentParser(description="StudyCards App")
    parser.add_argument("--init", action="store_true", help="Initialize DB and config")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    args = parser.parse_args()
    if args.init:
        load_config()  # Ensures config is copied if missing
        init_db()
        logger.info("DB initialized and config copied to %s", CONFIG_DIR)
        sys.exit(0)
    server_cfg = load_config()["server"]
    uvicorn.run(
        "main:app",
        host=server_cfg["host"],
        port=server_cfg["port"],
        reload=args.dev,
        log_level="info",
    )
