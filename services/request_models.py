# services/request_models.py
# Purpose: Response models for /api/generateContext (OpenAPI docs + tests).
#          The route relays model JSON as-is, so ContextFile allows extra keys.

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ContextFile(BaseModel):
    model_config = ConfigDict(extra="allow")

    projectSummary: Optional[str] = Field(None, description="A brief summary of the project")
    techStack: Optional[str] = Field(None, description="Key technologies used")
    dependencies: Optional[str] = Field(None, description="Comma-separated dependency names")
    fileStructure: Optional[str] = Field(None, description="File layout and the role of important files")
    coreLogic: Optional[str] = Field(None, description="Main data flow and how the parts interact")


class ErrorEnvelope(BaseModel):
    code: str
    message: str
    corr_id: str
    hint: Optional[str] = None
