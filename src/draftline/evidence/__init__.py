"""Supporting links for plans and answers."""

from draftline.evidence.resolver import Evidence, EvidenceResolver, SearchFn

__all__ = ["Evidence", "EvidenceResolver", "SearchFn"]
