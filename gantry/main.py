"""
Gantry Main Application

FastAPI application entry point for the Gantry workflow compiler.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from . import __version__
from .api.routes import router
from .config import get_config


# Configure logging
logging.basicConfig(
    level=getattr(logging, get_config().effective_log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Create FastAPI app
app = FastAPI(
    title="Gantry Workflow Compiler",
    description="""
## Gantry - Agentic Workflow Compiler

Gantry turns an agentic workflow specification into a GitHub Actions workflow:
- **Gate job** evaluating trigger conditions and command mentions
- **Agent job** running the selected engine with a compiled tool allow-list
- **Safe output jobs** applying the agent's requested side effects with least privilege

### What Gantry Does NOT Do
- Parse markdown or frontmatter
- Run the generated jobs

### Public API Contract
- `POST /api/v1/workflows/compile` - Compile a workflow to YAML
- `POST /api/v1/tools/permissions` - Compile a tools section to an allow-list
- `GET /api/v1/engines` - List agentic engines

### Guarantees
1. **Deterministic output** - Same specification produces byte-identical YAML
2. **Validated graphs** - Unknown dependencies and cycles are rejected before rendering
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include router
app.include_router(router)


@app.on_event("startup")
async def startup_event():
    logging.info("Gantry workflow compiler starting...")


@app.on_event("shutdown")
async def shutdown_event():
    logging.info("Gantry workflow compiler shutting down...")


@app.get("/", tags=["Root"])
async def root():
    return {
        "name": "Gantry Workflow Compiler",
        "version": __version__,
        "docs": "/docs",
        "health": "/api/v1/health",
    }
