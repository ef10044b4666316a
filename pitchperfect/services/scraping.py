"""Project details from a URL through the ``firecrawl-scrape`` edge function."""

import re

from pitchperfect.core.logging import get_logger
from pitchperfect.core.schemas_services import ScrapeResult
from pitchperfect.services.edge_functions import EdgeFunctionError, invoke_function

logger = get_logger(__name__)

SCRAPE_FUNCTION = "firecrawl-scrape"

_URL_RE = re.compile(r"^(https?://|www\.)", re.IGNORECASE)


def is_url(value: str) -> bool:
    """True when the input looks like a URL rather than a free-text idea."""
    return bool(_URL_RE.match(value.strip()))


async def scrape_url(url: str) -> ScrapeResult:
    """
    Scrape a project page into structured pitch details.

    Never raises: failures come back as ``success=False`` with an error so the
    caller can keep the user's typed input.
    """
    try:
        body = await invoke_function(SCRAPE_FUNCTION, json_body={"url": url.strip()})
        result = ScrapeResult.model_validate(body)
    except EdgeFunctionError as e:
        logger.warning(f"Scrape failed for {url}: {e}")
        return ScrapeResult(success=False, error=str(e))
    except ValueError as e:
        logger.warning(f"Unexpected scrape response for {url}: {e}")
        return ScrapeResult(success=False, error="Unexpected response from scraper")

    if result.success:
        logger.info(f"Scraped {url}: name={result.data.name if result.data else 'N/A'}")
    return result
