from pathlib import Path
import os
import sys

from fastapi import FastAPI
import uvicorn

# Resolve project root (two levels up from this file: botcore/main.py -> project root)
PROJECT_ROOT = Path(__file__).resolve().parent.parent
# Ensure project root on sys.path so `import botcore.*` works when running as a script
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from botcore.routers.bot_router import router as bot_router  # noqa: E402

app = FastAPI(title="botcore")


# Health check
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


app.include_router(bot_router, prefix="/v1/bot", tags=["bot"])


if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("BOTCORE_HOST", "0.0.0.0"), port=int(os.getenv("BOTCORE_PORT", "8000")))
