"""Named, statically declared views over exposed entities."""

from .registry import ProjectionDescriptor, ProjectionRegistry, RelationProjection

__all__ = ["ProjectionDescriptor", "ProjectionRegistry", "RelationProjection"]
