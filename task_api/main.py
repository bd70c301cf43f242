"""FastAPI application for the task service.

The database handle is owned by the application: the lifespan opens it with
the ``connect`` callable, stores it on ``app.state.db`` and closes it on
shutdown. A failed connection is logged and the app keeps serving; routes
that need the database then answer 503.
"""
import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError, WriteError
from starlette.concurrency import run_in_threadpool

from task_api.routes import router as tasks_router
from taskdb.connect_db import get_database
from taskdb.create_collections import create_collections

logger = logging.getLogger(__name__)

HOST = "0.0.0.0"
PORT = 3000


async def _database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Database unavailable"})


async def _write_error_handler(request: Request, exc: WriteError) -> JSONResponse:
    # code 121: rejected by the collection's $jsonSchema validator
    logger.warning("Write rejected on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": f"Schema validation error: {exc}"})


def create_app(
    connect: Callable[[], Database] = get_database,
    router: Optional[APIRouter] = None,
) -> FastAPI:
    """Build the app; ``router`` is mounted at ``/`` and defaults to the task routes."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db = None
        try:
            db = await run_in_threadpool(connect)
        except PyMongoError as e:
            logger.error("MongoDB connection error: %s", e)
        else:
            app.state.db = db
            logger.info("connected to MongoDB")
            try:
                await run_in_threadpool(create_collections, db)
            except PyMongoError as e:
                logger.warning("Failed to apply collection validators: %s", e)

        try:
            yield
        finally:
            if app.state.db is not None:
                app.state.db.client.close()
                app.state.db = None

    app = FastAPI(title="Task API", version="1.0.0", lifespan=lifespan)
    app.state.db = None
    app.add_exception_handler(WriteError, _write_error_handler)
    app.add_exception_handler(PyMongoError, _database_error_handler)
    app.include_router(router if router is not None else tasks_router)
    return app


app = create_app()
