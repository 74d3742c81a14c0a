"""Tests for the mutation engine.

Worked examples:
1. One-to-many attach appends fetched records in order
2. One-to-many detach drops elements by reference id
3. Many-to-many attach skips ids already present
4. Many-to-one attach stores the raw id, detach resets it
5. Empty id lists are rejected before anything changes
"""

import copy
from dataclasses import dataclass, field

import pytest

from linkage.core.errors import (
    EmptyOperandError,
    FieldNotFoundError,
    NotASequenceError,
    NotFoundError,
    UnsettableFieldError,
    UnsupportedRelationTypeError,
)
from linkage.core.mutation import _ATTACHERS, _DETACHERS, attach, detach
from linkage.models.relation import RelationDescriptor, RelationType
from linkage.repository.memory import InMemoryRepository

ITEMS = RelationDescriptor("items", RelationType.ONE_TO_MANY, field="Items")
TAGS = RelationDescriptor("tags", RelationType.MANY_TO_MANY, field="Tags")
OWNER = RelationDescriptor("Owner", RelationType.MANY_TO_ONE)
PROFILE = RelationDescriptor("profile", RelationType.ONE_TO_ONE, field="Profile")


@dataclass
class Card:
    ID: int
    Bio: str = ""


@dataclass
class Account:
    ID: int
    Profile: Card | None = None
    Items: list = field(default_factory=list)
    Tags: list[int] = field(default_factory=list)
    OwnerID: int = 0


@dataclass
class StrictAccount:
    ID: int
    Profile: Card = field(default_factory=lambda: Card(ID=0))


@pytest.fixture
def items_repo() -> InMemoryRepository:
    return InMemoryRepository([{"ID": 10}, {"ID": 20}])


@pytest.fixture
def owners() -> InMemoryRepository:
    return InMemoryRepository([{"ID": 5}])


class TestAttachDetachBasics:
    """Core attach and detach behavior on mapping records."""

    def test_one_to_many_attach(self, items_repo):
        """Attach appends fetched records in id order."""
        parent = {"ID": 1, "Items": []}
        attach(parent, ITEMS, [10, 20], items_repo)
        assert parent["Items"] == [{"ID": 10}, {"ID": 20}]

    def test_one_to_many_detach(self, items_repo):
        """Detach drops the element whose id was given."""
        parent = {"ID": 1, "Items": []}
        attach(parent, ITEMS, [10, 20], items_repo)
        detach(parent, ITEMS, [10])
        assert parent["Items"] == [{"ID": 20}]

    def test_many_to_many_attach_dedup(self, items_repo):
        """Attach skips ids that are already members."""
        parent = {"ID": 1, "Tags": [1]}
        attach(parent, TAGS, [1, 2], items_repo)
        assert parent["Tags"] == [1, 2]

    def test_many_to_one_attach_then_detach(self, owners):
        """Attach stores the raw id, detach resets it to zero."""
        parent = {"ID": 1, "OwnerID": 0}
        attach(parent, OWNER, [5], owners)
        assert parent["OwnerID"] == 5

        detach(parent, OWNER, ["anything"])
        assert parent["OwnerID"] == 0

    @pytest.mark.parametrize("descriptor", [ITEMS, TAGS, OWNER, PROFILE])
    def test_empty_ids_rejected(self, descriptor, items_repo):
        """Empty id lists are rejected for every kind and both operations."""
        parent = {"ID": 1, "Items": [{"ID": 10}], "Tags": [1], "OwnerID": 5, "Profile": None}
        before = copy.deepcopy(parent)

        with pytest.raises(EmptyOperandError, match="No IDs provided to attach"):
            attach(parent, descriptor, [], items_repo)
        with pytest.raises(EmptyOperandError, match="No IDs provided to detach"):
            detach(parent, descriptor, [])

        assert parent == before
        assert items_repo.calls == []


class TestOneToOne:
    """One-to-one attach and detach."""

    def test_attach_uses_first_id(self):
        """Only the first id is fetched and stored."""
        repo = InMemoryRepository([{"ID": 5}, {"ID": 6}])
        parent = {"ID": 1, "Profile": None}
        attach(parent, PROFILE, [5, 6], repo)
        assert parent["Profile"] == {"ID": 5}
        assert repo.calls == [("get", "5")]

    def test_detach_clears(self):
        """Detach sets the field to None regardless of ids."""
        parent = {"ID": 1, "Profile": {"ID": 5}}
        detach(parent, PROFILE, [999])
        assert parent["Profile"] is None

    def test_native_record(self):
        """Works on dataclass records with a typed field."""
        repo = InMemoryRepository([Card(ID=5, Bio="hi")])
        account = Account(ID=1)
        attach(account, PROFILE, [5], repo)
        assert account.Profile == Card(ID=5, Bio="hi")

        detach(account, PROFILE, [5])
        assert account.Profile is None

    def test_detach_missing_field(self):
        """A mapping without the field is not given one."""
        parent = {"ID": 1}
        with pytest.raises(FieldNotFoundError, match="Field Profile not found"):
            detach(parent, PROFILE, [1])
        assert parent == {"ID": 1}

    def test_detach_non_nullable(self):
        """A non-optional field cannot be cleared."""
        account = StrictAccount(ID=1)
        with pytest.raises(UnsettableFieldError):
            detach(account, PROFILE, [1])

    def test_attach_missing_record(self):
        """Missing target leaves the parent unchanged."""
        parent = {"ID": 1, "Profile": None}
        with pytest.raises(NotFoundError):
            attach(parent, PROFILE, [404], InMemoryRepository())
        assert parent["Profile"] is None


class TestOneToMany:
    """One-to-many attach and detach."""

    def test_attach_allows_duplicates(self, items_repo):
        """Attaching the same id twice appends it twice."""
        parent = {"ID": 1, "Items": []}
        attach(parent, ITEMS, [10, 10], items_repo)
        assert parent["Items"] == [{"ID": 10}, {"ID": 10}]

    def test_attach_partial_failure_keeps_earlier(self, items_repo):
        """Records fetched before a failure stay on the in-memory parent."""
        parent = {"ID": 1, "Items": []}
        with pytest.raises(NotFoundError):
            attach(parent, ITEMS, [10, 99, 20], items_repo)
        assert parent["Items"] == [{"ID": 10}]

    def test_attach_requires_sequence(self, items_repo):
        """A scalar field cannot hold one-to-many content."""
        with pytest.raises(NotASequenceError):
            attach({"ID": 1, "Items": 3}, ITEMS, [10], items_repo)

    def test_attach_missing_field(self, items_repo):
        """A parent without the field fails before any fetch."""
        with pytest.raises(FieldNotFoundError):
            attach({"ID": 1}, ITEMS, [10], items_repo)
        assert items_repo.calls == []

    def test_detach_matches_across_numeric_forms(self):
        """A float id from JSON removes an int-keyed element."""
        parent = {"Items": [{"ID": 10}, {"ID": 20}]}
        detach(parent, ITEMS, [10.0])
        assert parent["Items"] == [{"ID": 20}]

    def test_detach_string_ids(self):
        """String ids remove matching string-keyed elements."""
        parent = {"Items": [{"ID": "a"}, {"ID": "b"}]}
        detach(parent, ITEMS, ["b"])
        assert parent["Items"] == [{"ID": "a"}]

    def test_detach_drops_elements_without_id(self):
        """Elements lacking the reference field are dropped."""
        parent = {"Items": [{"ID": 10}, {"Name": "orphan"}, {"ID": 20}]}
        detach(parent, ITEMS, [10])
        assert parent["Items"] == [{"ID": 20}]

    def test_detach_unknown_id_is_noop(self):
        """Detaching an absent id keeps everything with an id."""
        parent = {"Items": [{"ID": 10}]}
        detach(parent, ITEMS, [99])
        assert parent["Items"] == [{"ID": 10}]

    def test_custom_reference_field(self):
        """Elements can be matched on another identity field."""
        descriptor = RelationDescriptor(
            "items", RelationType.ONE_TO_MANY, field="Items", reference_field="id"
        )
        parent = {"Items": [{"id": 1}, {"id": 2}]}
        detach(parent, descriptor, [1])
        assert parent["Items"] == [{"id": 2}]

    def test_attach_then_detach_restores_members(self, items_repo):
        """Detaching what was just attached restores the existing members."""
        parent = {"ID": 1, "Items": [{"ID": 1, "Title": "kept"}, {"ID": 2}]}
        before = copy.deepcopy(parent["Items"])

        attach(parent, ITEMS, [10, 20], items_repo)
        assert len(parent["Items"]) == 4

        detach(parent, ITEMS, [10, 20])
        assert parent["Items"] == before

    def test_native_records(self):
        """Dataclass parents and elements."""
        repo = InMemoryRepository([Card(ID=10), Card(ID=20)])
        account = Account(ID=1)
        attach(account, ITEMS, [10, 20], repo)
        detach(account, ITEMS, ["10"])
        assert account.Items == [Card(ID=20)]


class TestManyToOne:
    """Many-to-one attach and detach."""

    def test_attach_stores_raw_id(self, owners):
        """The raw id is stored, not the fetched record."""
        parent = {"OwnerID": 0}
        attach(parent, OWNER, [5.0], owners)
        assert parent["OwnerID"] == 5.0

    def test_attach_checks_existence(self, owners):
        """A missing target is rejected and nothing is stored."""
        parent = {"OwnerID": 0}
        with pytest.raises(NotFoundError):
            attach(parent, OWNER, [6], owners)
        assert parent["OwnerID"] == 0

    def test_attach_missing_foreign_key(self, owners):
        """A mapping without the foreign key field is not given one."""
        parent = {"ID": 1}
        with pytest.raises(FieldNotFoundError, match="Field OwnerID not found"):
            attach(parent, OWNER, [5], owners)
        assert parent == {"ID": 1}

    def test_detach_missing_foreign_key(self):
        """Detach fails the same way on a missing foreign key."""
        parent = {"ID": 1}
        with pytest.raises(FieldNotFoundError):
            detach(parent, OWNER, [5])
        assert parent == {"ID": 1}

    def test_attach_native_converts(self, owners):
        """Native int foreign keys get an int."""
        account = Account(ID=1)
        attach(account, OWNER, ["5"], owners)
        assert account.OwnerID == 5

    def test_detach_native_zero(self):
        """Native foreign keys reset to their type's zero."""
        account = Account(ID=1, OwnerID=5)
        detach(account, OWNER, [7])
        assert account.OwnerID == 0

    def test_explicit_foreign_key(self, owners):
        """An explicit foreign key field is used instead of name + ID."""
        descriptor = RelationDescriptor("owner", RelationType.MANY_TO_ONE, foreign_key="owner_id")
        parent = {"owner_id": None}
        attach(parent, descriptor, [5], owners)
        assert parent["owner_id"] == 5


class TestManyToMany:
    """Many-to-many attach and detach."""

    def test_attach_does_not_fetch(self, items_repo):
        """Ids are stored without an existence check."""
        parent = {"Tags": []}
        attach(parent, TAGS, [404], items_repo)
        assert parent["Tags"] == [404]
        assert items_repo.calls == []

    def test_attach_dedups_within_request(self, items_repo):
        """Repeated ids in one request are stored once."""
        parent = {"Tags": []}
        attach(parent, TAGS, [3, 3, 4], items_repo)
        assert parent["Tags"] == [3, 4]

    def test_attach_twice_is_idempotent(self, items_repo):
        """Repeating an attach leaves the member set unchanged."""
        parent = {"Tags": [5]}
        attach(parent, TAGS, [1, 2], items_repo)
        once = list(parent["Tags"])

        attach(parent, TAGS, [1, 2], items_repo)

        assert parent["Tags"] == once == [5, 1, 2]

    def test_detach_raw_equality(self):
        """Members are removed by raw equality."""
        parent = {"Tags": [1, 2, "3"]}
        detach(parent, TAGS, [2, 3])
        assert parent["Tags"] == [1, "3"]

    def test_detach_all(self):
        """Removing every member leaves an empty list."""
        parent = {"Tags": [1, 2]}
        detach(parent, TAGS, [1, 2])
        assert parent["Tags"] == []

    def test_native_record(self, items_repo):
        """Typed list fields on dataclasses."""
        account = Account(ID=1, Tags=[1])
        attach(account, TAGS, [1, 2], items_repo)
        detach(account, TAGS, [1])
        assert account.Tags == [2]


class TestDispatch:
    """Relation kind dispatch."""

    def test_every_kind_handled(self):
        """Attach and detach cover the whole enum."""
        assert set(_ATTACHERS) == set(RelationType)
        assert set(_DETACHERS) == set(RelationType)

    def test_string_kind_accepted(self, items_repo):
        """Descriptors built with a raw kind string still dispatch."""
        descriptor = RelationDescriptor("tags", "many-to-many", field="Tags")
        parent = {"Tags": []}
        attach(parent, descriptor, [1], items_repo)
        assert parent["Tags"] == [1]

    def test_unknown_kind(self, items_repo):
        """Unknown kinds raise and leave the parent untouched."""
        descriptor = RelationDescriptor("x", "sideways", field="Tags")
        parent = {"Tags": [1]}
        with pytest.raises(UnsupportedRelationTypeError):
            attach(parent, descriptor, [2], items_repo)
        with pytest.raises(UnsupportedRelationTypeError):
            detach(parent, descriptor, [1])
        assert parent == {"Tags": [1]}
