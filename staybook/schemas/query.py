"""Serializable query specifications consumed by the generic repository.

A QuerySpec describes filtering, ordering and eager-loaded relations by field
name, so callers never hand the repository executable query expressions.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

# Comparison operators a Criterion may use.
CriterionOp = Literal["eq", "ne", "lt", "le", "gt", "ge", "in", "ieq", "contains", "is_null"]


class Criterion(BaseModel):
    """Single field comparison. Criteria in a QuerySpec are AND-ed together."""

    field: str = Field(..., min_length=1, description="Mapped column name on the entity.")
    op: CriterionOp = Field(default="eq", description="Comparison operator.")
    value: Any = Field(default=None, description="Right-hand operand; a list for 'in', a bool for 'is_null'.")


class Ordering(BaseModel):
    """Sort key."""

    field: str = Field(..., min_length=1)
    descending: bool = False


class QuerySpec(BaseModel):
    """Filter, sort and include description for repository queries."""

    where: list[Criterion] = Field(default_factory=list)
    order_by: list[Ordering] = Field(default_factory=list)
    include: list[str] = Field(
        default_factory=list,
        description="Relationship names to eager-load.",
    )

    @classmethod
    def matching(cls, **equals: Any) -> "QuerySpec":
        """Shorthand for equality criteria: ``QuerySpec.matching(user_id=7, role=100)``."""
        return cls(where=[Criterion(field=name, op="eq", value=value) for name, value in equals.items()])

    def and_where(self, field: str, op: CriterionOp = "eq", value: Any = None) -> "QuerySpec":
        """Return a copy with one more criterion."""
        return self.model_copy(
            update={"where": [*self.where, Criterion(field=field, op=op, value=value)]}
        )

    def sorted_by(self, field: str, descending: bool = False) -> "QuerySpec":
        """Return a copy with one more sort key."""
        return self.model_copy(
            update={"order_by": [*self.order_by, Ordering(field=field, descending=descending)]}
        )
