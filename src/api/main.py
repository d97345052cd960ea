"""
FastAPI application entry point.

Local-only server exposing one JobGroup and its JobControl loop.
The loop is NOT started on boot; POST /jobcontrol/start starts it.
"""

from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import Depends, FastAPI

from src import __version__
from src.infra.settings import get_api_host, get_api_port, get_group_name, get_poll_interval
from .routers import jobcontrol
from .dependencies.auth import verify_api_key
from ._jobcontrol_state import init_job_control, shutdown_job_control


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Creates the served JobGroup on startup and stops its loop on shutdown.
    """
    load_dotenv()
    init_job_control(get_group_name(), get_poll_interval())

    yield

    shutdown_job_control()


tags_metadata = [
    {
        "name": "jobcontrol",
        "description": "Dependency-aware job scheduling - job status, plan registration and loop control",
    },
]

app = FastAPI(
    title="JobControl API",
    lifespan=lifespan,
    description="""
## JobControl API

Local-only API over an in-memory job group.

### Authentication
When `API_AUTH_ENABLED=true`, all `/jobcontrol` endpoints require an
`X-API-Key` header matching the `API_KEY` environment variable.

### Usage
```bash
uvicorn src.api.main:app --host 127.0.0.1 --port 8000

curl -X POST http://localhost:8000/jobcontrol/plans \\
  -H "Content-Type: application/json" \\
  -d '{"jobs": [{"name": "clean", "kind": "delete", "path": "/tmp/out", "optional": true}]}'
curl -X POST http://localhost:8000/jobcontrol/start
curl http://localhost:8000/jobcontrol/status
```

State is not persisted; restarting the server forgets every job.
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=tags_metadata,
)


@app.get("/health")
async def health_check():
    """Health check endpoint. Not authenticated."""
    return {"status": "ok", "version": __version__}


app.include_router(
    jobcontrol.router,
    prefix="/jobcontrol",
    tags=["jobcontrol"],
    dependencies=[Depends(verify_api_key)],
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=get_api_host(), port=get_api_port())
