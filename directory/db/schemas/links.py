from pydantic import BaseModel, model_validator


class RelationTarget(BaseModel):
    """Body of an attach request: the related entity's id or its link."""

    id: str | None = None
    href: str | None = None

    @model_validator(mode="after")
    def _id_or_href(self):
        if not (self.id or self.href):
            raise ValueError("either 'id' or 'href' is required")
        return self
