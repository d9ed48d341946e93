import collections.abc
import enum
import typing

import pytest

from ..exceptions import InvalidContextError, UnsupportedTypeError
from ..types import (
    BuiltinType,
    CollectionType,
    EnumType,
    Intersection,
    IntersectionType,
    NullableType,
    ObjectType,
    TypeContext,
    TypeIdentifier,
    TypeResolver,
    UnionType,
    array,
    builtin,
    intersection,
    iterable,
    nullable,
    union,
)


class Color(enum.Enum):
    RED = "red"


class Animal:
    pass


class Dog(Animal):
    pass


class Puppy(Dog):
    pass


class Readable:
    pass


class Closable:
    pass


T = typing.TypeVar("T")


class Box(typing.Generic[T]):
    pass


class Extent(typing.NamedTuple):
    width: int
    height: int


INT = builtin(TypeIdentifier.INT)
STRING = builtin(TypeIdentifier.STRING)


class TestFactories:
    def test_nullable_is_idempotent(self):
        assert nullable(nullable(INT)) == NullableType(INT)

    @pytest.mark.parametrize("identifier", [TypeIdentifier.NULL, TypeIdentifier.MIXED])
    def test_nullable_of_null_admitting_types(self, identifier):
        assert nullable(builtin(identifier)) == builtin(identifier)

    def test_nullable_of_union_admitting_null(self):
        descr = union(builtin(TypeIdentifier.MIXED), INT)
        assert nullable(descr) is descr
        assert nullable(union(INT, STRING)) == NullableType(UnionType((INT, STRING)))

    def test_union_flattens_and_dedupes(self):
        assert union(union(INT, STRING), INT) == UnionType((INT, STRING))

    def test_union_of_one(self):
        assert union(INT, INT) is INT

    def test_intersection_flattens(self):
        a, b, c = ObjectType(Readable), ObjectType(Closable), ObjectType(Animal)
        assert intersection(intersection(a, b), c) == IntersectionType((a, b, c))

    def test_builtin_collections(self):
        assert builtin(TypeIdentifier.ARRAY) == array()
        assert isinstance(builtin(TypeIdentifier.ITERABLE), CollectionType)

    def test_allows_null(self):
        assert not INT.allows_null
        assert NullableType(INT).allows_null
        assert UnionType((INT, builtin(TypeIdentifier.NULL))).allows_null

    def test_str(self):
        assert str(nullable(array(INT, STRING))) == "?array<string, int>"
        assert str(union(INT, ObjectType(Animal))) == "int|Animal"


class TestTypeResolver:
    @pytest.fixture
    def resolver(self) -> TypeResolver:
        return TypeResolver()

    @pytest.mark.parametrize(
        ("annotation", "expected"),
        [
            (int, INT),
            (float, builtin(TypeIdentifier.FLOAT)),
            (bool, builtin(TypeIdentifier.BOOL)),
            (str, STRING),
            (bytes, builtin(TypeIdentifier.BYTES)),
            (None, builtin(TypeIdentifier.NULL)),
            (type(None), builtin(TypeIdentifier.NULL)),
            (typing.Any, builtin(TypeIdentifier.MIXED)),
            (object, builtin(TypeIdentifier.OBJECT)),
            (Animal, ObjectType(Animal)),
            (Color, EnumType(Color)),
            (typing.Annotated[int, "meta"], INT),
            (typing.Final[str], STRING),
            (Extent, ObjectType(Extent)),
            (typing.Optional[Extent], NullableType(ObjectType(Extent))),
        ],
    )
    def test_simple(self, resolver, annotation, expected):
        assert resolver.resolve(annotation) == expected

    @pytest.mark.parametrize(
        ("annotation", "expected"),
        [
            (typing.Optional[int], NullableType(INT)),
            (int | None, NullableType(INT)),
            (typing.Union[int, str], UnionType((INT, STRING))),
            (int | str | None, NullableType(UnionType((INT, STRING)))),
            (typing.Optional[typing.Any], builtin(TypeIdentifier.MIXED)),
            (
                typing.Union[typing.Any, int, None],
                UnionType((builtin(TypeIdentifier.MIXED), INT)),
            ),
        ],
    )
    def test_unions(self, resolver, annotation, expected):
        assert resolver.resolve(annotation) == expected

    @pytest.mark.parametrize(
        ("annotation", "expected"),
        [
            (list, array()),
            (typing.List[int], array(INT)),
            (list[str], array(STRING)),
            (typing.Tuple[int, ...], array(INT)),
            (typing.Set[str], array(STRING)),
            (typing.Dict[str, int], array(INT, STRING)),
            (collections.abc.Mapping[str, Animal], array(ObjectType(Animal), STRING)),
            (typing.Sequence[typing.Callable[[], None]], array()),
            (typing.Iterable[int], iterable(INT)),
            (typing.Iterator[str], iterable(STRING)),
            (collections.abc.Generator, iterable()),
        ],
    )
    def test_collections(self, resolver, annotation, expected):
        assert resolver.resolve(annotation) == expected

    def test_intersection(self, resolver):
        assert resolver.resolve(Intersection[Readable, Closable]) == IntersectionType(
            (ObjectType(Readable), ObjectType(Closable))
        )
        assert resolver.resolve(Intersection[Readable, Closable] | None) == NullableType(
            IntersectionType((ObjectType(Readable), ObjectType(Closable)))
        )

    def test_intersection_needs_two_members(self):
        with pytest.raises(TypeError):
            Intersection[Readable]

    @pytest.mark.parametrize(
        ("keyword", "expected"),
        [
            ("self", Dog),
            ("SELF", Dog),
            ("static", Puppy),
            ("parent", Animal),
            ("Parent", Animal),
        ],
    )
    def test_contextual_keywords(self, resolver, keyword, expected):
        assert resolver.resolve(keyword, TypeContext(Dog, Puppy)) == ObjectType(expected)

    def test_self_type(self, resolver):
        assert resolver.resolve(typing.Self, TypeContext(Dog, Puppy)) == ObjectType(Puppy)

    def test_called_class_defaults_to_declaring_class(self, resolver):
        assert resolver.resolve("static", TypeContext(Dog)) == ObjectType(Dog)

    @pytest.mark.parametrize("keyword", ["self", "static", "parent"])
    def test_keyword_without_context(self, resolver, keyword):
        with pytest.raises(InvalidContextError) as exc_info:
            resolver.resolve(keyword)
        assert exc_info.value.keyword == keyword

    def test_parent_of_parentless_class(self, resolver):
        with pytest.raises(InvalidContextError) as exc_info:
            resolver.resolve("parent", TypeContext(Animal))
        assert exc_info.value.keyword == "parent"

    def test_forward_references(self, resolver):
        ctx = TypeContext(Dog)
        assert resolver.resolve("Animal", ctx) == ObjectType(Animal)
        assert resolver.resolve(typing.ForwardRef("Color"), ctx) == EnumType(Color)
        assert resolver.resolve("collections.abc.Iterator", ctx) == iterable()
        assert resolver.resolve("int", ctx) == INT
        assert resolver.resolve(typing.List["Animal"], ctx) == array(ObjectType(Animal))

    def test_unknown_forward_reference(self, resolver):
        with pytest.raises(UnsupportedTypeError):
            resolver.resolve("NoSuchThing", TypeContext(Dog))
        with pytest.raises(UnsupportedTypeError):
            resolver.resolve("NoSuchThing")

    @pytest.mark.parametrize(
        "annotation",
        [T, typing.Callable[[int], int], typing.Literal["a"], 42],
    )
    def test_unsupported(self, resolver, annotation):
        with pytest.raises(UnsupportedTypeError):
            resolver.resolve(annotation)

    def test_transparent(self):
        resolver = TypeResolver(transparent=(Box,))
        assert resolver.resolve(Box[int]) == INT
        assert resolver.resolve(Box[typing.Optional[str]]) == NullableType(STRING)
        with pytest.raises(UnsupportedTypeError):
            TypeResolver().resolve(Box[int])

    def test_result_kinds(self, resolver):
        assert isinstance(resolver.resolve(int), BuiltinType)
        assert resolver.resolve(typing.List[int]).is_identified_by(TypeIdentifier.ARRAY)
        assert resolver.resolve(Animal).is_identified_by(TypeIdentifier.OBJECT)
