"""Attach PubMed abstracts to flattened rows."""
import asyncio
import logging
from typing import Optional

from .config import settings
from .models import FlattenedRow
from .pubmed import PubMedClient, PubMedRequestError, extract_pubmed_ids
from .utils import batch

LOGGER = logging.getLogger(__name__)


async def enrich_row(
    row: FlattenedRow,
    client: PubMedClient,
    limit: Optional[int] = None,
    logger: logging.Logger = LOGGER,
) -> FlattenedRow:
    """Fetch abstracts for one row's publications, in place.

    A failed lookup leaves the row with no abstracts.
    """
    pubmed_ids = extract_pubmed_ids(row.publications)
    if not pubmed_ids:
        logger.debug(f"No PubMed ids for edge {row.edge_id}")
        return row
    try:
        if limit:
            abstracts = await client.fetch_top_recent(pubmed_ids, limit)
        else:
            abstracts = await client.fetch_abstracts(pubmed_ids)
    except PubMedRequestError as err:
        logger.warning(f"Error fetching abstracts for edge {row.edge_id}: {err}")
        abstracts = []
    except Exception as err:
        logger.warning(
            {
                "message": f"Unexpected error fetching abstracts for edge {row.edge_id}",
                "error": repr(err),
            }
        )
        abstracts = []
    row.abstracts = abstracts
    row.abstract_count = len(abstracts)
    return row


async def enrich_rows(
    rows: list[FlattenedRow],
    client: Optional[PubMedClient] = None,
    limit: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
) -> list[FlattenedRow]:
    """Fetch abstracts for all rows with publications, in place.

    Rows are looked up a few at a time. All clients share one rate limiter
    that spaces the underlying requests.
    """
    if logger is None:
        logger = LOGGER
    if client is None:
        client = PubMedClient(logger)

    batches = list(batch(rows, settings.enrich_batch_size))
    logger.info(
        f"Fetching abstracts for {len(rows)} rows in {len(batches)} batches"
    )
    for index, row_batch in enumerate(batches):
        await asyncio.gather(
            *(enrich_row(row, client, limit, logger) for row in row_batch)
        )
        if index + 1 < len(batches):
            await asyncio.sleep(settings.enrich_batch_delay)
    logger.info(
        f"Abstract fetching complete: "
        f"{sum(row.abstract_count or 0 for row in rows)} abstracts"
    )
    return rows
