"""Web search adapter: SearXNG JSON API via httpx, plus result merging."""

import logging
from abc import ABC, abstractmethod

import httpx

from roundtable.models import SearchConfig, SearchResult

logger = logging.getLogger(__name__)

_CATEGORIES = {"web": "general", "general": "general", "news": "news", "images": "images"}


class SearchError(Exception):
    """Raised when a search backend call fails."""


class SearchBackend(ABC):
    """Keyword search service returning ranked results."""

    @abstractmethod
    async def search(self, query: str, config: SearchConfig) -> list[SearchResult]:
        """Return up to ``config.max_results`` results for ``query``.

        Raises:
            SearchError: On transport or protocol failure.
        """
        ...


class SearXNGSearch(SearchBackend):
    """SearXNG instance queried through its ``/search?format=json`` endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout_sec: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_sec
        self._transport = transport

    def build_params(self, query: str, config: SearchConfig) -> dict[str, str]:
        params = {
            "q": query,
            "format": "json",
            "language": config.language,
            "categories": _CATEGORIES.get(config.category, "general"),
        }
        if config.engines:
            params["engines"] = ",".join(config.engines)
        return params

    async def search(self, query: str, config: SearchConfig) -> list[SearchResult]:
        params = self.build_params(query, config)
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.get("/search", params=params, headers={"Accept": "application/json"})
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise SearchError(f"SearXNG returned status {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise SearchError(f"SearXNG request failed: {exc}") from exc

        items = data.get("results", []) if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise SearchError("SearXNG response has no results list")

        results = [
            SearchResult(
                title=item.get("title", ""),
                url=item["url"],
                content=item.get("content") or "",
                engine=item.get("engine"),
                published_date=item.get("publishedDate"),
            )
            for item in [i for i in items if isinstance(i, dict)][: config.max_results]
            if item.get("url")
        ]
        logger.info("Search %r: %d results", query, len(results))
        return results


def merge_search_results(
    existing: list[SearchResult],
    new: list[SearchResult],
) -> list[SearchResult]:
    """Append results from ``new`` whose URL is not already present.

    Order of ``existing`` is preserved; the result never shrinks.
    """
    seen = {r.url for r in existing}
    merged = list(existing)
    for result in new:
        if result.url not in seen:
            seen.add(result.url)
            merged.append(result)
    return merged
