# promotion_engine/core/revision.py
"""Baseline revision selection."""

import re
from dataclasses import dataclass
from typing import Optional

from promotion_engine.core.errors import PromotionEngineError

REVISION_SUFFIX_RE = re.compile(r"^(?P<prefix>.+):(?P<revision>[0-9]+)$")


@dataclass(frozen=True)
class RevisionSelector:
    """
    Which registered revision to promote from.

    `revision=None` means the revision the service currently runs.
    """

    revision: Optional[int] = None

    @classmethod
    def latest(cls) -> "RevisionSelector":
        return cls(revision=None)

    @classmethod
    def explicit(cls, revision: int) -> "RevisionSelector":
        if revision < 1:
            raise PromotionEngineError(f"revision must be positive, got {revision}")
        return cls(revision=revision)

    @classmethod
    def from_flag(cls, value: int) -> "RevisionSelector":
        """Command-line convention: 0 selects the current revision."""
        return cls.latest() if value == 0 else cls.explicit(value)

    def resolve(self, current_ref: str) -> str:
        """
        Turn the service's current revision reference into the selected one.

        Example:
            arn:aws:ecs:us-east-1:123:task-definition/web:12 with revision 9
            -> arn:aws:ecs:us-east-1:123:task-definition/web:9
        """
        if self.revision is None:
            return current_ref

        match = REVISION_SUFFIX_RE.match(current_ref)
        if not match:
            raise PromotionEngineError(f"cannot find revision in {current_ref}")

        return f"{match.group('prefix')}:{self.revision}"

    def describe(self) -> str:
        return "latest" if self.revision is None else str(self.revision)
