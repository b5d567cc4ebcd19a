"""Entity reference model."""

from typing import Any

from pydantic import BaseModel, Field

from chronicle.memory.models.episode import new_id


class EntityRef(BaseModel):
    """Named concept (library, API, service) scoped to a project.

    Merged by (name, project_id, workspace_id); never duplicated.
    """

    id: str = Field(default_factory=new_id)
    name: str
    entity_type: str = Field(default="other", description="library, api, service, other")
    project_id: str
    workspace_id: str
    metadata: dict[str, Any] = Field(default_factory=dict)
