"""Prefix listing and bounded-concurrency object copies."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Iterable, Iterator

from .. import metrics
from ..config import DEFAULT_COPY_MAX_WORKERS
from ..exceptions import CopyFailedError, DataIntegrityError, NoObjectsFoundError, OperationCancelledError
from .gcp.base import ObjectStore

logger = logging.getLogger(__name__)


def list_objects(store: ObjectStore, bucket: str, prefix: str) -> Iterator[str]:
    """Yield the names of all objects under a prefix.

    Pages are fetched lazily. The iterator is single-pass; an error part way
    through propagates and the listing has to be restarted from the beginning.
    """
    count = 0
    for name in store.iter_object_names(bucket, prefix):
        count += 1
        yield name
    logger.debug(f"Listed {count} object(s) under gs://{bucket}/{prefix}")


def destination_key(key: str, source_prefix: str, destination_prefix: str) -> str:
    """Rewrite a key from the source prefix to the destination prefix.

    Raises:
        DataIntegrityError: If the key does not start with the source prefix
    """
    if not key.startswith(source_prefix):
        raise DataIntegrityError(key, source_prefix)
    return destination_prefix + key[len(source_prefix):]


def copy_objects(
    store: ObjectStore,
    bucket: str,
    source_prefix: str,
    destination_prefix: str,
    keys: Iterable[str],
    max_workers: int = DEFAULT_COPY_MAX_WORKERS,
    deadline: float | None = None,
) -> list[str]:
    """Copy every key to its rewritten destination within the same bucket.

    Copies run on a pool of at most max_workers threads. A failed copy does
    not stop the others; once all have finished, every failure is reported
    together. Copies overwrite their destination, so calling this again
    with the same keys is safe.

    Args:
        store: Object store to copy with
        bucket: Bucket holding source and destination objects
        source_prefix: Prefix the keys were listed under
        destination_prefix: Prefix replacing source_prefix in destination keys
        keys: Source object keys
        max_workers: Maximum number of concurrent copies
        deadline: Optional time.monotonic() deadline for the whole copy

    Returns:
        Destination keys, in the order of the source keys

    Raises:
        NoObjectsFoundError: If keys is empty
        DataIntegrityError: If a key does not start with source_prefix
        CopyFailedError: If one or more copies failed
        OperationCancelledError: If the deadline expired first
    """
    keys = list(keys)
    if not keys:
        raise NoObjectsFoundError(f"no objects to copy under gs://{bucket}/{source_prefix}")

    # Validate every key before the first copy is dispatched
    pairs = [(key, destination_key(key, source_prefix, destination_prefix)) for key in keys]

    if deadline is not None and time.monotonic() >= deadline:
        raise OperationCancelledError("copy deadline exceeded before any copy started", pending=keys)

    cancelled = threading.Event()

    def copy_one(source: str, destination: str) -> None:
        if cancelled.is_set():
            raise OperationCancelledError(f"copy of {source} cancelled")
        store.copy_object(bucket, source, destination)

    logger.info(
        f"Copying {len(pairs)} object(s) in bucket {bucket} from {source_prefix!r} to {destination_prefix!r}"
    )
    start_time = time.time()
    executor = ThreadPoolExecutor(max_workers=min(max_workers, len(pairs)), thread_name_prefix="copy")
    try:
        futures: dict[Future[None], str] = {
            executor.submit(copy_one, source, destination): source for source, destination in pairs
        }
        timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
        done, not_done = wait(futures, timeout=timeout)

        if not_done:
            cancelled.set()
            for future in not_done:
                future.cancel()
            pending = sorted(futures[future] for future in not_done)
            metrics.objects_copied_total.labels(result="cancelled").inc(len(pending))
            raise OperationCancelledError(
                f"copy deadline exceeded with {len(pending)} of {len(pairs)} copies outstanding",
                pending=pending,
            )

        failures: dict[str, Exception] = {}
        for future in done:
            source = futures[future]
            error = future.exception()
            if error is None:
                metrics.objects_copied_total.labels(result="success").inc()
                continue
            metrics.objects_copied_total.labels(result="failed").inc()
            logger.warning(f"Failed to copy gs://{bucket}/{source}: {error}")
            failures[source] = error
    finally:
        # Running copies cannot be interrupted; queued ones are dropped
        executor.shutdown(wait=False, cancel_futures=True)
        metrics.copy_duration_seconds.observe(time.time() - start_time)

    if failures:
        raise CopyFailedError(failures, copied=len(pairs) - len(failures))

    logger.info(f"Copied {len(pairs)} object(s) in bucket {bucket}")
    return [destination for _, destination in pairs]
