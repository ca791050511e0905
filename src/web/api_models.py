from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class RecordModel(BaseModel):
    key: str
    uid: str = ""
    username: str = ""
    dob: str = ""
    age: str = ""
    gender: str = ""
    mobile: str = ""
    email: str = ""
    address: str = ""
    source: str = ""
    last_seen: float = 0.0


class RecordsResponse(BaseModel):
    count: int
    records: List[RecordModel]


class HistoryEntryModel(BaseModel):
    raw: str
    received_at: float
    status: str


class HistoryResponse(BaseModel):
    count: int
    entries: List[HistoryEntryModel]


class CapabilitiesModel(BaseModel):
    backend: Optional[str] = Field(None, description="native|software, or null when unsupported")
    supported: bool
    secure_context: bool
    inflate_available: bool
    reasons: List[str] = Field(default_factory=list)


class StatusResponse(BaseModel):
    """
    Scanner status for clients polling the session.
    """
    state: str = Field(..., description="idle|acquiring|active|stopped")
    capabilities: CapabilitiesModel
    torch_supported: bool
    torch_enabled: bool
    retry_armed: bool
    last_error: Optional[str] = Field(None, description="Error code of the last failed start")
    record_count: int
    last_outcome: Optional[dict] = None
    uptime_seconds: int


class ScanControlResponse(BaseModel):
    state: str
    active: bool


class VisibilityRequest(BaseModel):
    hidden: bool


class TorchRequest(BaseModel):
    enabled: bool


class TorchResponse(BaseModel):
    applied: bool
    enabled: bool


class DecodeRequest(BaseModel):
    raw: str = Field(..., min_length=1)


class DecodeResponse(BaseModel):
    status: str = Field(..., description="captured|duplicate|unrecognized|no_identity|capability_missing")
    key: Optional[str] = None
    created: bool = False
    message: str = ""
    record: Optional[dict] = None


class ClearResponse(BaseModel):
    cleared: int
