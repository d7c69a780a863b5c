"""Named search definitions exposed under ``/{collection}/search``."""

from .registry import SearchDescriptor, SearchParameter, SearchRegistry, SubstringMatch

__all__ = ["SearchDescriptor", "SearchParameter", "SearchRegistry", "SubstringMatch"]
