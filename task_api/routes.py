import logging
from typing import Optional

from bson.errors import InvalidId
from bson.objectid import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pymongo.database import Database
from pymongo.errors import PyMongoError

from task_api.models import TaskIn, TaskOut, TaskPatch
from taskdb.schema import TASKS_COLLECTION
from taskdb.validation import DocumentValidationError, validate_document

logger = logging.getLogger(__name__)

router = APIRouter()


def db_conn(request: Request) -> Database:
    """Database handle owned by the application, opened in its lifespan."""
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database not connected")
    return db


# ======== Utility helpers ========
def _object_id(task_id: str) -> ObjectId:
    try:
        return ObjectId(task_id)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid id")


def _format_task(doc: dict) -> TaskOut:
    return TaskOut(
        id=str(doc["_id"]),
        title=doc.get("title"),
        description=doc.get("description"),
        completed=bool(doc.get("completed", False)),
    )


def _validate(doc: dict) -> None:
    try:
        validate_document(TASKS_COLLECTION, doc)
    except DocumentValidationError as e:
        raise HTTPException(status_code=400, detail=f"Schema validation error: {e.message}")


# ======== Tasks CRUD ========
@router.post("/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED, tags=["Tasks"])
def create_task(payload: TaskIn, db=Depends(db_conn)):
    # absent description is not stored
    doc = payload.model_dump(exclude_none=True)
    _validate(doc)
    res = db[TASKS_COLLECTION].insert_one(doc)
    if not res.acknowledged:
        raise HTTPException(status_code=500, detail="Failed to create task")
    saved = db[TASKS_COLLECTION].find_one({"_id": res.inserted_id})
    if not saved:
        raise HTTPException(status_code=500, detail="Failed to retrieve created task")
    logger.info("Created task %s", res.inserted_id)
    return _format_task(saved)


@router.get("/tasks", response_model=list[TaskOut], tags=["Tasks"])
def list_tasks(completed: Optional[bool] = None, db=Depends(db_conn)):
    query = {}
    if completed:
        query["completed"] = True
    elif completed is not None:
        # documents without the key read back as not completed
        query["completed"] = {"$ne": True}
    cursor = db[TASKS_COLLECTION].find(query).sort("_id", -1)
    return [_format_task(r) for r in cursor]


@router.get("/tasks/{task_id}", response_model=TaskOut, tags=["Tasks"])
def get_task(task_id: str, db=Depends(db_conn)):
    doc = db[TASKS_COLLECTION].find_one({"_id": _object_id(task_id)})
    if not doc:
        raise HTTPException(status_code=404, detail="Task not found")
    return _format_task(doc)


@router.put("/tasks/{task_id}", response_model=TaskOut, tags=["Tasks"])
def update_task(task_id: str, payload: TaskIn, db=Depends(db_conn)):
    oid = _object_id(task_id)
    doc = payload.model_dump(exclude_none=True)
    _validate(doc)
    result = db[TASKS_COLLECTION].replace_one({"_id": oid}, doc)
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Task not found")
    return _format_task({**doc, "_id": oid})


@router.patch("/tasks/{task_id}", response_model=TaskOut, tags=["Tasks"])
def patch_task(task_id: str, payload: TaskPatch, db=Depends(db_conn)):
    oid = _object_id(task_id)
    doc = db[TASKS_COLLECTION].find_one({"_id": oid})
    if not doc:
        raise HTTPException(status_code=404, detail="Task not found")
    payload_dict = payload.model_dump(exclude_unset=True)
    if not payload_dict:
        raise HTTPException(status_code=400, detail="No fields to update")
    # merge and validate
    merged = dict(doc)
    merged.update(payload_dict)
    _validate(merged)
    # a null description removes the key rather than storing null
    to_set = {k: v for k, v in payload_dict.items() if v is not None}
    to_unset = {k: "" for k, v in payload_dict.items() if v is None}
    update = {}
    if to_set:
        update["$set"] = to_set
    if to_unset:
        update["$unset"] = to_unset
    db[TASKS_COLLECTION].update_one({"_id": oid}, update)
    return _format_task({k: v for k, v in merged.items() if v is not None})


@router.delete("/tasks/{task_id}", response_model=dict, tags=["Tasks"])
def delete_task(task_id: str, db=Depends(db_conn)):
    result = db[TASKS_COLLECTION].delete_one({"_id": _object_id(task_id)})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Task not found")
    logger.info("Deleted task %s", task_id)
    return {"deleted": result.deleted_count}


@router.get("/health", response_model=dict, tags=["Health"])
def health(db=Depends(db_conn)):
    try:
        db.client.admin.command("ping")
    except PyMongoError:
        raise HTTPException(status_code=503, detail="db ping failed")
    return {"status": "ok"}
