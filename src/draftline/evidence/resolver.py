"""
Evidence Resolver

Collects a few supporting links for a query through an injected search
capability: one result per host, truncated to the limit.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Sequence
from urllib.parse import urlsplit

import structlog

if TYPE_CHECKING:
    from draftline.config import DraftlineConfig

logger = structlog.get_logger(__name__)


# Search capability: async (query, limit) -> [{title, url, snippet}, ...]
SearchFn = Callable[[str, int], Awaitable[Sequence[Any]]]

DEFAULT_WHY = "Relevant source"


@dataclass(frozen=True)
class Evidence:
    """A supporting link and why it is relevant."""
    title: str
    url: str
    why: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "url": self.url, "why": self.why}


def _get(item: Any, key: str) -> Any:
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


def host_key(url: str) -> str:
    """Host of url for de-duplication; the raw url when it has none."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        host = None
    return host or url


class EvidenceResolver:
    """
    Resolves evidence links for a query.

    Without a search capability, or when it raises or times out, resolve()
    returns an empty list.
    """

    def __init__(
        self,
        search: Optional[SearchFn] = None,
        timeout: float = 10.0,
        limit: int = 3,
    ):
        self.search = search
        self.timeout = timeout
        self.limit = limit

    @classmethod
    def from_config(
        cls, config: DraftlineConfig, search: Optional[SearchFn] = None
    ) -> "EvidenceResolver":
        """Build from the ``evidence`` section of the application config."""
        return cls(search=search, timeout=config.evidence.timeout, limit=config.evidence.limit)

    async def resolve(self, query: str, limit: Optional[int] = None) -> list[Evidence]:
        """
        Find up to ``limit`` supporting links, one per host.

        Args:
            query: What to search for
            limit: Maximum number of links (defaults to the resolver's)
        """
        if limit is None:
            limit = self.limit
        if self.search is None or limit <= 0:
            return []

        try:
            results = await asyncio.wait_for(self.search(query, limit), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("evidence_search_timeout", query=query[:60], timeout=self.timeout)
            return []
        except Exception as e:
            logger.warning("evidence_search_failed", query=query[:60], error=str(e))
            return []

        seen: set[str] = set()
        evidence: list[Evidence] = []
        for item in results or []:
            url = _get(item, "url")
            if not isinstance(url, str) or not url.strip():
                continue
            key = host_key(url)
            if key in seen:
                continue
            seen.add(key)
            evidence.append(Evidence(
                title=str(_get(item, "title") or url),
                url=url,
                why=_get(item, "snippet") or DEFAULT_WHY,
            ))
            if len(evidence) >= limit:
                break

        logger.debug("evidence_resolved", query=query[:60], count=len(evidence))
        return evidence
