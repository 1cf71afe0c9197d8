"""Bocha web search client.

Calls the Bocha web-search endpoint and returns compact results that the
search executor cites by ``ref`` number. Results are also rendered as an
<info type="search"> XML block so later rounds can reference the raw
evidence (``x:info[search]``).
"""

import logging
from typing import Optional
from xml.sax.saxutils import escape

import httpx
from pydantic import BaseModel, Field

from researchflow.config import SearchSettings

logger = logging.getLogger(__name__)

MAX_RESULTS = 25


class SearchHit(BaseModel):
    ref: int
    title: str = ""
    url: str = ""
    summary: str = ""
    site_name: str = ""
    date: str = ""


class SearchResponse(BaseModel):
    query: str
    total: int = 0
    results: list[SearchHit] = Field(default_factory=list)


class BochaSearchClient:
    """Async client for Bocha web search."""

    def __init__(
        self,
        settings: SearchSettings,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self._http_client = http_client

    async def search(
        self,
        query: str,
        *,
        count: Optional[int] = None,
        freshness: Optional[str] = None,
        summary: Optional[bool] = None,
    ) -> SearchResponse:
        if not query or not isinstance(query, str):
            raise ValueError("bocha web search: query is required")

        body = {
            "query": query,
            "freshness": freshness or self.settings.freshness,
            "summary": self.settings.summary if summary is None else summary,
            "count": max(1, min(int(count or self.settings.count), MAX_RESULTS)),
        }
        headers = {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
        }

        logger.info(f"Bocha search: {query!r} (count={body['count']})")

        if self._http_client is not None:
            response = await self._http_client.post(
                self.settings.endpoint, json=body, headers=headers
            )
        else:
            async with httpx.AsyncClient(timeout=self.settings.timeout) as client:
                response = await client.post(
                    self.settings.endpoint, json=body, headers=headers
                )

        if response.status_code >= 400:
            raise RuntimeError(
                f"bocha web search HTTP {response.status_code}: {response.text[:500]}"
            )

        return parse_search_response(query, response.json())


def parse_search_response(query: str, payload: dict) -> SearchResponse:
    """Map the raw API payload to SearchResponse.

    Expected shape:
    { code: 200, data: { webPages: { value: [ {name, url, summary, siteName, dateLastCrawled} ] } } }
    """
    try:
        pages = ((payload.get("data") or {}).get("webPages") or {}).get("value") or []
        hits = [
            SearchHit(
                ref=i + 1,
                title=page.get("name") or "",
                url=page.get("url") or "",
                summary=page.get("summary") or page.get("snippet") or "",
                site_name=page.get("siteName") or "",
                date=page.get("dateLastCrawled") or "",
            )
            for i, page in enumerate(pages)
        ]
    except (AttributeError, TypeError) as e:
        raise RuntimeError(f"bocha web search: unexpected response shape: {e}") from e

    return SearchResponse(query=query, total=len(hits), results=hits)


def _attr(value) -> str:
    return escape(str(value), {'"': "&quot;"})


def _cdata(text: str) -> str:
    return "<![CDATA[" + str(text or "").replace("]]>", "]]]]><![CDATA[>") + "]]>"


def build_search_info_xml(searches: list[SearchResponse]) -> str:
    """Render search results as an <info type="search"> block."""
    lines = ['<info type="search">', "  <searches>"]
    for step, search in enumerate(searches, start=1):
        lines.append(
            f'    <search step="{step}" query="{_attr(search.query)}" total="{search.total}">'
        )
        for hit in search.results:
            lines.append(
                f'      <result ref="{hit.ref}" title="{_attr(hit.title)}" url="{_attr(hit.url)}" '
                f'siteName="{_attr(hit.site_name)}" date="{_attr(hit.date)}">'
            )
            lines.append(f"        <summary>{_cdata(hit.summary)}</summary>")
            lines.append("      </result>")
        lines.append("    </search>")
    lines.append("  </searches>")
    lines.append("</info>")
    return "\n".join(lines)


def format_results_for_prompt(search: SearchResponse) -> str:
    """Compact result listing the model can cite with [ref:N]."""
    if not search.results:
        return "(no results)"
    blocks = []
    for hit in search.results:
        header = f"[ref:{hit.ref}] {hit.title}"
        meta = " | ".join(p for p in (hit.site_name, hit.date, hit.url) if p)
        blocks.append(f"{header}\n{meta}\n{hit.summary}".strip())
    return "\n\n".join(blocks)
