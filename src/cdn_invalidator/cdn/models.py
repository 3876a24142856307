"""
Validated response models for the Yandex Cloud CDN and Operations APIs
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OperationError(BaseModel):
    """Error reported by a finished long-running operation (google.rpc.Status shape)"""

    model_config = ConfigDict(extra="ignore")

    code: Optional[Any] = Field(None, description="Provider error code")
    message: Optional[str] = Field(None, description="Human readable error message")
    details: List[Any] = Field(default_factory=list)


class OperationMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    progress: Optional[float] = Field(None, description="Completion percentage")


class Operation(BaseModel):
    """
    Long-running operation as returned by the Operations API

    Created by a purge request, mutated only by the provider and terminal
    once ``done`` is true.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., min_length=1, description="Operation identifier")
    done: bool = False
    error: Optional[OperationError] = None
    metadata: Optional[OperationMetadata] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    created_by: Optional[str] = Field(None, alias="createdBy")
    modified_at: Optional[datetime] = Field(None, alias="modifiedAt")
    response: Optional[Dict[str, Any]] = None

    @property
    def progress(self) -> Optional[float]:
        return self.metadata.progress if self.metadata else None

    @property
    def failed(self) -> bool:
        return self.done and self.error is not None


class CDNResource(BaseModel):
    """CDN resource as listed by ``GET /cdn/v1/resources``"""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., min_length=1)
    cname: Optional[str] = None
    folder_id: Optional[str] = Field(None, alias="folderId")
    active: Optional[bool] = None
    secondary_hostnames: List[str] = Field(default_factory=list, alias="secondaryHostnames")
    origin_group_id: Optional[str] = Field(None, alias="originGroupId")

    @field_validator("cname")
    @classmethod
    def normalize_cname(cls, v):
        return v.strip() if isinstance(v, str) else v
