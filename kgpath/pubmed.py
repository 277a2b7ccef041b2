"""PubMed E-utilities client."""
import asyncio
import logging
import re
import time
from typing import Iterable, Optional
import xml.etree.ElementTree as ET

import httpx

from .caching import async_locking_cache
from .config import settings
from .models import NOT_AVAILABLE, Abstract, PublicationSummary
from .utils import batch, deduplicate, log_request, log_response

LOGGER = logging.getLogger(__name__)

PUBMED_ID_PATTERN = re.compile(r"^(?:pubmed|pmid):?(\d+)$|^(\d+)$", re.IGNORECASE)
MONTHS = {
    month: index
    for index, month in enumerate(
        ["jan", "feb", "mar", "apr", "may", "jun",
         "jul", "aug", "sep", "oct", "nov", "dec"],
        start=1,
    )
}


class PubMedRequestError(Exception):
    """Issue with a PubMed request."""


def extract_pubmed_ids(publications: Optional[str]) -> list[str]:
    """Get numeric PubMed ids from a publications string.

    "PMID:123;pubmed:456, 789 doi:10.1/x" -> ["123", "456", "789"]
    """
    if not publications or publications == NOT_AVAILABLE:
        return []
    ids = []
    for part in re.split(r"[,;\s]+", publications):
        match = PUBMED_ID_PATTERN.match(part.strip())
        if match:
            ids.append(match.group(1) or match.group(2))
    return ids


class RateLimiter:
    """Space calls at least `delay` seconds apart, across all callers.

    Without an explicit delay, `pubmed_rate_limit_delay` is read on each call.
    """

    def __init__(self, delay: Optional[float] = None):
        self.delay = delay
        self._lock = None
        self._loop = None
        self._last = None

    def _get_lock(self) -> asyncio.Lock:
        # asyncio locks are bound to one event loop
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            self._lock = asyncio.Lock()
            self._loop = loop
        return self._lock

    async def wait(self):
        delay = settings.pubmed_rate_limit_delay if self.delay is None else self.delay
        async with self._get_lock():
            if self._last is not None:
                remaining = self._last + delay - time.monotonic()
                if remaining > 0:
                    await asyncio.sleep(remaining)
            self._last = time.monotonic()


# shared by all clients
RATE_LIMITER = RateLimiter()


def _month_number(month: Optional[str]) -> int:
    if not month:
        return 1
    if month.isdecimal():
        return int(month) if 1 <= int(month) <= 12 else 1
    return MONTHS.get(month[:3].lower(), 1)


def format_date(year: Optional[str], month: Optional[str] = None, day: Optional[str] = None) -> Optional[str]:
    """ISO date from PubMed date parts."""
    if not year or not year.isdecimal():
        return None
    day_number = int(day) if day and day.isdecimal() and len(day) <= 2 else 1
    return f"{int(year):04d}-{_month_number(month):02d}-{day_number:02d}"


def parse_summary_date(text: Optional[str]) -> Optional[str]:
    """Parse esummary dates such as "2019 Mar 5" or "2019 Mar-Apr"."""
    if not text:
        return None
    parts = re.split(r"[\s-]+", text.strip())
    return format_date(*parts[:3])


def _text(element: Optional[ET.Element]) -> Optional[str]:
    if element is None:
        return None
    text = "".join(element.itertext()).strip()
    return text or None


def parse_summaries(xml: str) -> list[PublicationSummary]:
    """Parse an esummary response."""
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as err:
        raise PubMedRequestError(f"Could not parse esummary response: {err}") from err
    summaries = []
    for doc in root.iter("DocSum"):
        pubmed_id = _text(doc.find("Id"))
        if not pubmed_id:
            continue
        items = {item.get("Name"): _text(item) for item in doc.findall("Item")}
        summaries.append(
            PublicationSummary(
                id=pubmed_id,
                title=items.get("Title") or "Unknown Title",
                journal=items.get("FullJournalName") or "Unknown Journal",
                publication_date=parse_summary_date(items.get("PubDate")),
            )
        )
    return summaries


def parse_abstracts(xml: str) -> list[Abstract]:
    """Parse an efetch response."""
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as err:
        raise PubMedRequestError(f"Could not parse efetch response: {err}") from err
    abstracts = []
    for article in root.iter("PubmedArticle"):
        pubmed_id = _text(article.find(".//PMID"))
        if not pubmed_id:
            continue
        pub_date = article.find(".//Journal/JournalIssue/PubDate")
        if pub_date is not None and pub_date.find("Year") is not None:
            publication_date = format_date(
                _text(pub_date.find("Year")),
                _text(pub_date.find("Month")),
                _text(pub_date.find("Day")),
            )
        else:
            publication_date = parse_summary_date(_text(article.find(".//PubDate/MedlineDate")))
        sections = [
            text
            for text in (_text(section) for section in article.iter("AbstractText"))
            if text
        ]
        abstracts.append(
            Abstract(
                id=pubmed_id,
                title=_text(article.find(".//ArticleTitle")) or "Unknown Title",
                journal=_text(article.find(".//Journal/Title")) or "Unknown Journal",
                publication_date=publication_date,
                abstract=" ".join(sections) or "No abstract available",
            )
        )
    return abstracts


class PubMedClient:
    """Rate-limited, batched PubMed lookups."""

    def __init__(
        self,
        logger: logging.Logger = None,
        rate_limiter: RateLimiter = None,
        api_key: Optional[str] = None,
    ):
        if logger is None:
            logger = LOGGER
        self.logger = logger
        self.url = str(settings.pubmed_url).rstrip("/")
        self.api_key = api_key or settings.pubmed_api_key
        self.batch_size = settings.pubmed_batch_size
        if rate_limiter is None:
            rate_limiter = RATE_LIMITER
        self.rate_limiter = rate_limiter

        if settings.use_cache:
            self.fetch_batch = async_locking_cache(self._fetch_batch)
        else:
            self.fetch_batch = self._fetch_batch

    def _params(self, ids: list[str]) -> dict:
        params = {
            "db": "pubmed",
            "id": ",".join(ids),
            "retmode": "xml",
            "tool": settings.pubmed_tool,
            "email": settings.pubmed_email,
        }
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    async def _get(self, endpoint: str, params: dict) -> str:
        """GET an E-utilities endpoint, logging and raising on failure."""
        await self.rate_limiter.wait()
        try:
            async with httpx.AsyncClient(timeout=settings.pubmed_timeout) as client:
                self.logger.debug(f"Sending request to {endpoint} for {params['id']}")
                response = await client.get(f"{self.url}/{endpoint}", params=params)
                response.raise_for_status()
                return response.text
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                message = "PubMed rate limit exceeded"
            else:
                message = f"Response Error contacting PubMed {endpoint}"
            self.logger.warning(
                {
                    "message": message,
                    "error": str(e),
                    "request": log_request(e.request),
                    "response": log_response(e.response),
                }
            )
        except httpx.RequestError as e:
            self.logger.warning(
                {
                    "message": f"Request Error contacting PubMed {endpoint}",
                    "error": str(e),
                    "request": log_request(e.request),
                }
            )
        raise PubMedRequestError(f"PubMed {endpoint} request failed")

    async def _fetch_batch(self, endpoint: str, ids: list[str]) -> str:
        return await self._get(endpoint, self._params(ids))

    async def fetch_summaries(self, ids: Iterable[str]) -> list[PublicationSummary]:
        """Titles, journals and dates."""
        summaries = []
        for id_batch in batch(deduplicate(ids), self.batch_size):
            xml = await self.fetch_batch("esummary.fcgi", id_batch)
            summaries.extend(parse_summaries(xml))
        return summaries

    async def fetch_abstracts(self, ids: Iterable[str]) -> list[Abstract]:
        """Full abstracts."""
        abstracts = []
        for id_batch in batch(deduplicate(ids), self.batch_size):
            xml = await self.fetch_batch("efetch.fcgi", id_batch)
            abstracts.extend(parse_abstracts(xml))
        return abstracts

    async def fetch_top_recent(self, ids: Iterable[str], limit: int = 3) -> list[Abstract]:
        """Abstracts of the `limit` most recently published ids."""
        summaries = await self.fetch_summaries(ids)
        # undated publications last
        summaries.sort(key=lambda summary: summary.publication_date or "", reverse=True)
        top_ids = [summary.id for summary in summaries[:limit]]
        if not top_ids:
            return []
        return await self.fetch_abstracts(top_ids)
