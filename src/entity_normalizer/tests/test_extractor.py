import datetime
import typing

import pytest

from ..exceptions import InvalidContextError
from ..extractor import AttributeTypeExtractor, infer_type_from_value
from ..models import Cardinality, RelationshipDescriptor
from ..types import (
    NullableType,
    ObjectType,
    TypeIdentifier,
    array,
    builtin,
)

INT = builtin(TypeIdentifier.INT)
STRING = builtin(TypeIdentifier.STRING)


class Parent:
    pass


class Sample(Parent):
    from_setter: str
    from_getter = None
    from_field: typing.Optional[datetime.date] = None
    from_default = 10
    nullable_default: typing.Optional["Unresolvable"] = 1.5  # type: ignore # noqa: F821
    unknown = None
    callable_field: typing.Callable[[], int]

    def setFromSetter(self, value: int) -> None:
        pass

    def getFromSetter(self) -> float:
        return 0.0

    def getFromGetter(self) -> typing.List[str]:
        return []

    def set_untyped(self, value) -> None:
        pass

    def setMe(self, value: "self") -> None:
        pass

    def setParentRef(self, value: "parent") -> None:
        pass


class Orphan:
    def setParentRef(self, value: "parent") -> None:
        pass


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (True, builtin(TypeIdentifier.BOOL)),
        (1, INT),
        (1.5, builtin(TypeIdentifier.FLOAT)),
        ("x", STRING),
        (b"x", builtin(TypeIdentifier.BYTES)),
        ([1], array()),
        ({"a": 1}, array()),
        (frozenset(), array()),
        (object(), builtin(TypeIdentifier.OBJECT)),
    ],
)
def test_infer_type_from_value(value, expected):
    assert infer_type_from_value(value) == expected


class TestAttributeTypeExtractor:
    @pytest.fixture
    def extractor(self) -> AttributeTypeExtractor:
        return AttributeTypeExtractor()

    def test_mutator_first(self, extractor):
        assert extractor.get_type(Sample, "from_setter", {}) == INT

    def test_accessor_return_type(self, extractor):
        assert extractor.get_type(Sample, "from_getter", {}) == array(STRING)

    def test_field_annotation(self, extractor):
        assert extractor.get_type(Sample, "from_field", {}) == NullableType(
            ObjectType(datetime.date)
        )

    def test_default_value(self, extractor):
        assert extractor.get_type(Sample, "from_default", {}) == INT

    def test_default_value_of_nullable_field(self, extractor):
        assert extractor.get_type(Sample, "nullable_default", {}) == NullableType(
            builtin(TypeIdentifier.FLOAT)
        )

    def test_unknown(self, extractor):
        assert extractor.get_type(Sample, "unknown", {}) is None
        assert extractor.get_type(Sample, "untyped", {}) is None
        assert extractor.get_type(Sample, "nonexistent", {}) is None
        assert extractor.get_type(Sample, "callable_field", {}) is None

    def test_relationships_are_skipped(self, extractor):
        relationships = {
            "from_setter": RelationshipDescriptor(
                name="from_setter", cardinality=Cardinality.ONE, target=Parent
            )
        }
        assert extractor.get_type(Sample, "from_setter", relationships) is None

    def test_contextual_keywords(self, extractor):
        assert extractor.get_type(Sample, "me", {}) == ObjectType(Sample)
        assert extractor.get_type(Sample, "parent_ref", {}) == ObjectType(Parent)

    def test_invalid_context_propagates(self, extractor):
        with pytest.raises(InvalidContextError):
            extractor.get_type(Orphan, "parent_ref", {})

    def test_mutator_parameter_type(self, extractor):
        handle = extractor.member_resolver.get_mutator_method(Sample, "from_setter")
        assert handle is not None
        assert extractor.get_mutator_parameter_type(Sample, handle) == INT
        untyped = extractor.member_resolver.get_mutator_method(Sample, "untyped")
        assert untyped is not None
        assert extractor.get_mutator_parameter_type(Sample, untyped) is None

    def test_memoized(self, extractor):
        extractor.get_type(Sample, "from_default", {})
        assert (Sample, "from_default") in extractor._declared_types
