# promotion_engine/infrastructure/aws/ssm_repository.py
"""SSM Parameter Store implementation of the history repository."""

import json
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from promotion_engine.core.errors import HistoryError
from promotion_engine.core.models import HistoryEntry, HistoryKey
from promotion_engine.core.repository import HistoryRepository
from promotion_engine.infrastructure.aws.errors import error_code

logger = logging.getLogger(__name__)

# Anything SSM rejects inside one parameter name segment
_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_.\-]")


# ============================================
# Mapping Functions
# ============================================

def entry_to_record(entry: HistoryEntry) -> Dict[str, Any]:
    return {
        "revision": entry.revision_number,
        "message": entry.message,
        "timestamp": entry.timestamp.isoformat(),
    }


def record_to_entry(record: Dict[str, Any]) -> HistoryEntry:
    return HistoryEntry(
        revision_number=int(record["revision"]),
        message=record["message"],
        timestamp=datetime.fromisoformat(record["timestamp"]),
    )


def name_segment(value: str) -> str:
    """
    Parameter name segment for a cluster or service.

    ARNs collapse to their short name (`arn:aws:ecs:...:cluster/prod` -> `prod`).
    """
    if value.startswith("arn:"):
        value = value.rsplit("/", 1)[-1]
    return _INVALID_NAME_CHARS.sub("_", value)


# ============================================
# Repository Implementation
# ============================================

class SsmHistoryRepository(HistoryRepository):
    """
    Keeps each service's history as one JSON list parameter, oldest first.

    Appends are read-modify-write, so callers must serialize appends per key
    (DeploymentHistoryStore does).
    """

    def __init__(self, ssm_client, parameter_prefix: str = "/promotion-engine/history", max_entries: int = 10):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._client = ssm_client
        self._prefix = "/" + parameter_prefix.strip("/")
        self._max_entries = max_entries

    def parameter_name(self, key: HistoryKey) -> str:
        return f"{self._prefix}/{name_segment(key.cluster)}/{name_segment(key.service)}"

    def append(self, key: HistoryKey, entry: HistoryEntry) -> None:
        records = self._read(key)
        records.append(entry_to_record(entry))
        records = records[-self._max_entries:]

        try:
            self._client.put_parameter(
                Name=self.parameter_name(key),
                Value=json.dumps(records),
                Type="String",
                Overwrite=True,
            )
        except (ClientError, BotoCoreError) as e:
            raise HistoryError(f"Failed to write history for {key}: {e}") from e

    def latest(self, key: HistoryKey) -> Optional[HistoryEntry]:
        records = self._read(key)
        if not records:
            return None
        return record_to_entry(records[-1])

    def list_entries(self, key: HistoryKey, limit: int) -> List[HistoryEntry]:
        records = self._read(key)
        return [record_to_entry(r) for r in reversed(records)][:limit]

    def _read(self, key: HistoryKey) -> List[Dict[str, Any]]:
        name = self.parameter_name(key)
        try:
            response = self._client.get_parameter(Name=name)
        except ClientError as e:
            if error_code(e) == "ParameterNotFound":
                return []
            raise HistoryError(f"Failed to read history for {key}: {e}") from e
        except BotoCoreError as e:
            raise HistoryError(f"Failed to read history for {key}: {e}") from e

        try:
            records = json.loads(response["Parameter"]["Value"])
        except (KeyError, json.JSONDecodeError) as e:
            raise HistoryError(f"History parameter {name} is not valid JSON") from e

        if not isinstance(records, list):
            raise HistoryError(f"History parameter {name} must hold a JSON list")
        return records
