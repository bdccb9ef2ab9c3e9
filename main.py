#!/usr/bin/env python
import traceback
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import certifi
from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient

from config import settings
from exceptions import SQYPingException
from logging_config import logger
from routers.compositions import router as compositions_router
from routers.journees import router as journees_router
from routers.root import router as root_router
from routers.sync import router as sync_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting SQY Ping API server...")
    logger.info(f"Connecting to MongoDB: {settings.DB_NAME}")
    app.state.client = AsyncIOMotorClient(settings.DB_URL, tlsCAFile=certifi.where())
    app.state.mongodb = app.state.client[settings.DB_NAME]
    logger.info("MongoDB connection established")

    yield

    # Shutdown
    logger.info("Shutting down SQY Ping API server...")
    app.state.client.close()
    logger.info("MongoDB connection closed")


app = FastAPI(
    lifespan=lifespan,
    title="SQY Ping API",
    version="1.0.0",
    description="""
## SQY Ping team composition API

Builds the weekly team line-ups of a table tennis club and checks them
against the federation rules.

### Key Features

* **Compositions** - Assign players to teams per match day, with live rule checks
* **Burn rules** - Players who played too often in a stronger team are locked out of weaker ones
* **Default compositions** - Phase templates applied to a match day in one click
* **Federation sync** - Players, teams and matches pulled from the federation API

### Error Handling

All errors return a standardized format with correlation IDs for debugging:

```json
{
  "error": {
    "message": "Resource not found",
    "status_code": 404,
    "correlation_id": "uuid",
    "timestamp": "ISO-8601",
    "path": "/api/endpoint"
  }
}
```
    """,
    openapi_tags=[
        {"name": "journees", "description": "Match days known per competition and phase"},
        {
            "name": "compositions",
            "description": "Match day compositions, assignment checks and default templates",
        },
        {"name": "sync", "description": "Federation data synchronisation"},
    ],
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception Handlers
@app.exception_handler(SQYPingException)
async def sqyping_exception_handler(request: Request, exc: SQYPingException):
    """Handle all SQY Ping custom exceptions"""
    correlation_id = str(uuid.uuid4())

    error_response = {
        "error": {
            "message": exc.message,
            "status_code": exc.status_code,
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": request.url.path,
            "details": exc.details,
        }
    }

    logger.error(
        f"[{correlation_id}] {exc.__class__.__name__}: {exc.message}",
        extra={
            "correlation_id": correlation_id,
            "status_code": exc.status_code,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    return JSONResponse(status_code=exc.status_code, content=error_response)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle FastAPI HTTPExceptions with consistent format"""
    correlation_id = str(uuid.uuid4())

    error_response = {
        "error": {
            "message": exc.detail,
            "status_code": exc.status_code,
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": request.url.path,
        }
    }

    logger.error(
        f"[{correlation_id}] HTTPException: {exc.detail}",
        extra={
            "correlation_id": correlation_id,
            "status_code": exc.status_code,
            "path": request.url.path,
        },
    )

    return JSONResponse(status_code=exc.status_code, content=error_response)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected exceptions"""
    correlation_id = str(uuid.uuid4())

    logger.error(
        f"[{correlation_id}] Unhandled exception: {str(exc)}",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "traceback": traceback.format_exc(),
        },
    )

    error_response = {
        "error": {
            "message": "An unexpected error occurred",
            "status_code": 500,
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": request.url.path,
        }
    }

    return JSONResponse(status_code=500, content=error_response)


app.include_router(root_router, prefix="", tags=["root"])
app.include_router(journees_router, prefix="/journees", tags=["journees"])
app.include_router(compositions_router, prefix="/compositions", tags=["compositions"])
app.include_router(sync_router, prefix="/sync", tags=["sync"])

# if __name__ == "__main__":
#    uvicorn.run("main:app", reload=True)
