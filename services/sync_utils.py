"""
Helpers shared by the sync services: bounded batched reads and chunked bulk writes
"""

import asyncio
from collections.abc import Iterable, Sequence
from typing import Any

from pymongo.errors import PyMongoError

from config import settings
from exceptions import DatabaseOperationException
from logging_config import logger


def chunked(items: Sequence[Any], size: int) -> list[Sequence[Any]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


async def fetch_documents_by_ids(
    db,
    collection: str,
    ids: Iterable[str],
    projection: dict[str, int] | None = None,
    batch_size: int | None = None,
    concurrency: int | None = None,
) -> list[dict]:
    """
    Read documents by _id with $in queries of batch_size ids, at most
    `concurrency` queries in flight.
    """
    unique_ids = list(dict.fromkeys(ids))
    if not unique_ids:
        return []
    semaphore = asyncio.Semaphore(concurrency or settings.SYNC_READ_CONCURRENCY)

    async def read(batch: Sequence[str]) -> list[dict]:
        async with semaphore:
            cursor = db[collection].find({"_id": {"$in": list(batch)}}, projection)
            return await cursor.to_list(length=None)

    try:
        batches = await asyncio.gather(
            *(read(batch) for batch in chunked(unique_ids, batch_size or settings.SYNC_READ_BATCH_SIZE))
        )
    except PyMongoError as e:
        raise DatabaseOperationException(
            operation="find", collection=collection, details={"error": str(e), "ids": len(unique_ids)}
        ) from e
    return [doc for batch in batches for doc in batch]


async def bulk_write_in_batches(db, collection: str, operations: list, batch_size: int | None = None) -> int:
    """Sequential unordered bulk writes of at most batch_size operations, returns the documents touched"""
    size = min(batch_size or settings.SYNC_WRITE_BATCH_SIZE, 500)
    touched = 0
    for index, batch in enumerate(chunked(operations, size)):
        try:
            result = await db[collection].bulk_write(list(batch), ordered=False)
        except PyMongoError as e:
            raise DatabaseOperationException(
                operation="bulk_write",
                collection=collection,
                details={"error": str(e), "batch": index, "batch_size": len(batch)},
            ) from e
        touched += result.upserted_count + result.modified_count
        if settings.DEBUG_LEVEL > 0:
            logger.debug(f"Bulk write {collection} batch {index + 1}: {len(batch)} operations")
    return touched
