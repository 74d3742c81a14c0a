"""Resource definitions.

A resource names a record type exposed by the admin API and carries its
relation descriptors. Resources are built once at startup and passed
explicitly to whatever needs their relations.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from linkage.models.relation import RelationDescriptor, extract_relations


@dataclass
class Resource:
    """Resource exposed by the API."""

    name: str
    model: type | None = None
    relations: list[RelationDescriptor] = field(default_factory=list)
    id_field: str = "id"

    @classmethod
    def from_model(cls, name: str, model: type, id_field: str = "id") -> Resource:
        """Create a resource whose relations come from the model's relation tags."""
        return cls(name=name, model=model, relations=extract_relations(model), id_field=id_field)

    def get_relations(self) -> list[RelationDescriptor]:
        return list(self.relations)

    def get_relation(self, name: str) -> RelationDescriptor | None:
        for relation in self.relations:
            if relation.name == name:
                return relation
        return None

    def has_relation(self, name: str) -> bool:
        return self.get_relation(name) is not None
