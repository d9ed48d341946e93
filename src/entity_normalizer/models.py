import dataclasses
import enum
import typing

MARKERS_KEY = "entity_normalizer"


class Cardinality(enum.Enum):
    ONE = "one"
    MANY = "many"


@dataclasses.dataclass(frozen=True)
class RelationshipDescriptor:
    """
    A :py:class:`RelationshipDescriptor` describes a link from an attribute of a mapped
    class to another mapped class.
    """

    name: str
    """
    Name of the attribute that holds the relationship.
    """

    cardinality: Cardinality

    target: type
    """
    The class on the other side of the relationship.
    """

    is_owning_side: bool = True
    """
    Whether this side is responsible for writing the link.  Only meaningful for
    :py:attr:`Cardinality.MANY`.
    """

    column: typing.Optional[str] = None
    """
    For :py:attr:`Cardinality.ONE`, the name of the attribute that stores the identifier
    of the related object, if any.
    """


class RelationshipValue:
    pass


@dataclasses.dataclass(frozen=True)
class Identifiers(RelationshipValue):
    values: typing.Tuple[typing.Any, ...]


@dataclasses.dataclass(frozen=True)
class Embedded(RelationshipValue):
    objects: typing.Tuple[typing.Any, ...]


@dataclasses.dataclass(frozen=True)
class SingleRef(RelationshipValue):
    object: typing.Any


@dataclasses.dataclass(frozen=True)
class SingleId(RelationshipValue):
    identifier: typing.Any


@dataclasses.dataclass(frozen=True)
class Cleared(RelationshipValue):
    pass


def to_external(value: RelationshipValue) -> typing.Any:
    if isinstance(value, Identifiers):
        return list(value.values)
    elif isinstance(value, Embedded):
        return list(value.objects)
    elif isinstance(value, SingleRef):
        return value.object
    elif isinstance(value, SingleId):
        return value.identifier
    elif isinstance(value, Cleared):
        return None
    raise TypeError(f"unknown relationship value: {value!r}")


@dataclasses.dataclass(frozen=True)
class DeepNormalize:
    """
    Marks a relationship attribute as eligible for traversal during normalization.
    Relationships without this marker are left out of the normalized output.
    """

    enabled: bool = True


class Groups:
    """
    Tags an attribute with the serialization groups it belongs to.
    """

    names: typing.FrozenSet[str]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(repr(n) for n in sorted(self.names))})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Groups) and self.names == other.names

    def __hash__(self) -> int:
        return hash(self.names)

    def __init__(self, *names: str):
        if not names:
            raise TypeError("at least one group name is required")
        self.names = frozenset(names)


def markers(*items: typing.Any) -> typing.Dict[str, typing.Tuple[typing.Any, ...]]:
    """
    Builds the mapping to pass as ``info`` to an SQLAlchemy property or as ``metadata`` to
    a dataclass field, so that the given markers get attached to the attribute::

        bars = orm.relationship("Bar", info=markers(DeepNormalize()))
    """
    return {MARKERS_KEY: tuple(items)}


@dataclasses.dataclass(frozen=True)
class NormalizerOptions:
    collapse_relationships_to_identifiers: bool = False
    """
    "Form mode": related objects are replaced by their identifiers.
    """

    allowed_groups: typing.FrozenSet[str] = frozenset()
    """
    When non-empty, only attributes tagged with one of these groups are considered.
    """

    attributes: typing.Optional[typing.Tuple[str, ...]] = None
    """
    Explicit allow-list of attribute names.  Attributes exposed only through methods
    must be listed here to be normalized.
    """

    ignored_attributes: typing.FrozenSet[str] = frozenset()

    def with_overrides(self, **kwargs: typing.Any) -> "NormalizerOptions":
        return dataclasses.replace(self, **kwargs)

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_groups", frozenset(self.allowed_groups))
        object.__setattr__(self, "ignored_attributes", frozenset(self.ignored_attributes))
        if self.attributes is not None:
            object.__setattr__(self, "attributes", tuple(self.attributes))


class DiagnosticKind(enum.Enum):
    UNKNOWN_ATTRIBUTE = "unknown_attribute"
    """An input attribute has neither a mutator nor a writable field."""
    UNRESOLVED_IDENTIFIER = "unresolved_identifier"
    """An identifier did not resolve to an object of the relationship's target class."""
    READ_ONLY_RELATIONSHIP = "read_only_relationship"
    """A value was supplied for the non-owning side of a relationship."""
    NULL_REJECTED = "null_rejected"
    """``None`` was supplied to a mutator that does not accept it."""
    CONVERSION_FAILED = "conversion_failed"
    """A value could not be coerced to the attribute's expected type."""
    UNINITIALIZED_ATTRIBUTE = "uninitialized_attribute"
    """A field listed for normalization has never been assigned."""
    MISSING_IDENTIFIER = "missing_identifier"
    """In form mode, a related object has no single identifier to stand for it."""


@dataclasses.dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    class_: type
    attribute: str
    message: str
    value: typing.Any = None


class Diagnostics(typing.List[Diagnostic]):
    """
    Collects the input that a lenient normalization call silently skipped.
    """

    def of_kind(self, kind: DiagnosticKind) -> typing.List[Diagnostic]:
        return [d for d in self if d.kind is kind]

    def attributes(self) -> typing.List[str]:
        return [d.attribute for d in self]


@dataclasses.dataclass(frozen=True)
class NormalizationContext:
    """
    The per-call state passed down the whole traversal of a single
    normalize / denormalize call.
    """

    class_: type
    relationships: typing.Mapping[str, RelationshipDescriptor]
    options: NormalizerOptions
    diagnostics: typing.Optional[Diagnostics] = None
    lookups: typing.Dict[typing.Any, typing.Any] = dataclasses.field(default_factory=dict)
    """
    Memoized collaborator lookups for the duration of the call.
    """

    @property
    def form_mode(self) -> bool:
        return self.options.collapse_relationships_to_identifiers

    def get_relationship(self, name: str) -> typing.Optional[RelationshipDescriptor]:
        return self.relationships.get(name)

    def report(self, diagnostic: Diagnostic) -> None:
        if self.diagnostics is not None:
            self.diagnostics.append(diagnostic)

    def clear(self) -> None:
        self.lookups.clear()
