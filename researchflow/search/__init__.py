"""Web search collaborators used by the search executor."""

from researchflow.search.bocha import (
    BochaSearchClient,
    SearchHit,
    SearchResponse,
    build_search_info_xml,
)

__all__ = [
    "BochaSearchClient",
    "SearchHit",
    "SearchResponse",
    "build_search_info_xml",
]
