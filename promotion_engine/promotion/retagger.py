# promotion_engine/promotion/retagger.py
"""Registry retagger - points a new tag at existing image content."""

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Iterable, List

from promotion_engine.core.models import RetagRequest
from promotion_engine.core.platform import ContainerRegistry

logger = logging.getLogger(__name__)


class RegistryRetagger:
    """
    Copies the manifest under one tag to another tag of the same repository.

    No image bytes move: the new tag references byte-identical content, so the
    promoted revision runs exactly the image validated under the source tag.
    Writing a tag that already exists overwrites it; callers must never reuse
    a destination tag across attempts.
    """

    def __init__(self, registry: ContainerRegistry, max_workers: int = 4):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._registry = registry
        self._max_workers = max_workers

    def retag(self, repository_name: str, from_tag: str, to_tag: str) -> None:
        """
        Raises:
            ImageNotFoundError: No image under `from_tag`
            RegistryWriteError: Registry rejected the write
        """
        logger.info(f"[retag] {repository_name}: {from_tag} -> {to_tag}")

        manifest = self._registry.get_manifest(repository_name, from_tag)
        self._registry.put_manifest(repository_name, to_tag, manifest)

        logger.info(f"[retag] ✅ {repository_name}:{to_tag} written")

    def retag_all(self, requests: Iterable[RetagRequest]) -> None:
        """
        Run every retag, concurrently across repositories.

        The first failure is raised; retags that have not started yet are
        cancelled. Retags already written stay in place (they only add
        attempt-scoped tags).
        """
        pending: List[RetagRequest] = list(requests)
        if not pending:
            return

        workers = min(self._max_workers, len(pending))
        if workers == 1:
            for request in pending:
                self.retag(request.repository_name, request.from_tag, request.to_tag)
            return

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="retag") as pool:
            futures = [
                pool.submit(self.retag, r.repository_name, r.from_tag, r.to_tag)
                for r in pending
            ]
            done, not_done = wait(futures, return_when=FIRST_EXCEPTION)

            for future in not_done:
                future.cancel()

            for future in futures:
                if future in done and future.exception() is not None:
                    logger.error(f"[retag] ❌ Aborting remaining retags: {future.exception()}")
                    raise future.exception()
