from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ======== Schemas ========
class TaskIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1)
    description: Optional[str] = None
    completed: bool = False


class TaskOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    completed: bool = False


class TaskPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    completed: Optional[bool] = None
