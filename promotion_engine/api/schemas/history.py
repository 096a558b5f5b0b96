from datetime import datetime
from typing import List

from pydantic import BaseModel


class HistoryEntryResponse(BaseModel):
    revision_number: int
    message: str
    timestamp: datetime


class HistoryListResponse(BaseModel):
    cluster: str
    service: str
    entries: List[HistoryEntryResponse]
