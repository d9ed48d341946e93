"""
Normalized descriptions of the value shape an attribute expects, and the
resolver that derives them from Python annotations.
"""
import collections.abc
import dataclasses
import enum
import functools
import sys
import typing

from .exceptions import InvalidContextError, UnsupportedTypeError
from .utils import NoneType, is_union, strip_annotated


class TypeIdentifier(enum.Enum):
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    STRING = "string"
    BYTES = "bytes"
    ARRAY = "array"
    ITERABLE = "iterable"
    NULL = "null"
    MIXED = "mixed"
    OBJECT = "object"


class TypeDescriptor:
    @property
    def allows_null(self) -> bool:
        return False

    def is_identified_by(self, *identifiers: TypeIdentifier) -> bool:
        return False


@dataclasses.dataclass(frozen=True)
class BuiltinType(TypeDescriptor):
    identifier: TypeIdentifier

    @property
    def allows_null(self) -> bool:
        return self.identifier in (TypeIdentifier.NULL, TypeIdentifier.MIXED)

    def is_identified_by(self, *identifiers: TypeIdentifier) -> bool:
        return self.identifier in identifiers

    def __str__(self) -> str:
        return self.identifier.value


@dataclasses.dataclass(frozen=True)
class CollectionType(BuiltinType):
    key_type: typing.Optional[TypeDescriptor] = None
    value_type: typing.Optional[TypeDescriptor] = None

    def __str__(self) -> str:
        if self.value_type is None:
            return self.identifier.value
        if self.key_type is None:
            return f"{self.identifier.value}<{self.value_type}>"
        return f"{self.identifier.value}<{self.key_type}, {self.value_type}>"


@dataclasses.dataclass(frozen=True)
class ObjectType(TypeDescriptor):
    class_: type

    def is_identified_by(self, *identifiers: TypeIdentifier) -> bool:
        return TypeIdentifier.OBJECT in identifiers

    def __str__(self) -> str:
        return self.class_.__qualname__


@dataclasses.dataclass(frozen=True)
class EnumType(ObjectType):
    pass


@dataclasses.dataclass(frozen=True)
class NullableType(TypeDescriptor):
    wrapped: TypeDescriptor

    @property
    def allows_null(self) -> bool:
        return True

    def is_identified_by(self, *identifiers: TypeIdentifier) -> bool:
        return TypeIdentifier.NULL in identifiers or self.wrapped.is_identified_by(*identifiers)

    def __str__(self) -> str:
        return f"?{self.wrapped}"


@dataclasses.dataclass(frozen=True)
class UnionType(TypeDescriptor):
    types: typing.Tuple[TypeDescriptor, ...]

    @property
    def allows_null(self) -> bool:
        return any(t.allows_null for t in self.types)

    def is_identified_by(self, *identifiers: TypeIdentifier) -> bool:
        return any(t.is_identified_by(*identifiers) for t in self.types)

    def __str__(self) -> str:
        return "|".join(str(t) for t in self.types)


@dataclasses.dataclass(frozen=True)
class IntersectionType(TypeDescriptor):
    types: typing.Tuple[TypeDescriptor, ...]

    def is_identified_by(self, *identifiers: TypeIdentifier) -> bool:
        return all(t.is_identified_by(*identifiers) for t in self.types)

    def __str__(self) -> str:
        return "&".join(str(t) for t in self.types)


def builtin(identifier: TypeIdentifier) -> BuiltinType:
    if identifier in (TypeIdentifier.ARRAY, TypeIdentifier.ITERABLE):
        return CollectionType(identifier)
    return BuiltinType(identifier)


def array(
    value_type: typing.Optional[TypeDescriptor] = None,
    key_type: typing.Optional[TypeDescriptor] = None,
) -> CollectionType:
    return CollectionType(TypeIdentifier.ARRAY, key_type=key_type, value_type=value_type)


def iterable(value_type: typing.Optional[TypeDescriptor] = None) -> CollectionType:
    return CollectionType(TypeIdentifier.ITERABLE, value_type=value_type)


def nullable(type_: TypeDescriptor) -> TypeDescriptor:
    if type_.allows_null:
        return type_
    return NullableType(type_)


def _flatten(
    kind: typing.Type[typing.Union[UnionType, IntersectionType]],
    types_: typing.Iterable[TypeDescriptor],
) -> typing.Tuple[TypeDescriptor, ...]:
    flattened: typing.List[TypeDescriptor] = []
    for t in types_:
        members = t.types if type(t) is kind else (t,)
        for m in members:
            if m not in flattened:
                flattened.append(m)
    return tuple(flattened)


def union(*types_: TypeDescriptor) -> TypeDescriptor:
    members = _flatten(UnionType, types_)
    if not members:
        raise ValueError("a union needs at least one member")
    if len(members) == 1:
        return members[0]
    return UnionType(members)


def intersection(*types_: TypeDescriptor) -> TypeDescriptor:
    members = _flatten(IntersectionType, types_)
    if not members:
        raise ValueError("an intersection needs at least one member")
    if len(members) == 1:
        return members[0]
    return IntersectionType(members)


class _IntersectionForm:
    """
    The annotation form produced by :py:data:`Intersection`.
    """

    __slots__ = ("__args__",)

    __args__: typing.Tuple[typing.Any, ...]

    def __init__(self, args: typing.Tuple[typing.Any, ...]):
        self.__args__ = args

    def __call__(self, *args, **kwargs):
        raise TypeError("Intersection cannot be instantiated")

    def __or__(self, other):
        return typing.Union[self, other]

    def __ror__(self, other):
        return typing.Union[other, self]

    def __eq__(self, other):
        return isinstance(other, _IntersectionForm) and self.__args__ == other.__args__

    def __hash__(self):
        return hash(("Intersection", self.__args__))

    def __repr__(self):
        return f"Intersection[{', '.join(getattr(a, '__qualname__', repr(a)) for a in self.__args__)}]"


class _IntersectionSpecialForm:
    def __getitem__(self, params) -> _IntersectionForm:
        if not isinstance(params, tuple):
            params = (params,)
        if len(params) < 2:
            raise TypeError("Intersection requires at least two members")
        return _IntersectionForm(params)

    def __repr__(self):
        return "Intersection"


Intersection = _IntersectionSpecialForm()
"""
Annotates a value that satisfies every listed class at once::

    def set_handler(self, handler: Intersection[Readable, Closable]) -> None:
        ...
"""


@dataclasses.dataclass(frozen=True)
class TypeContext:
    """
    Supplies the classes that the contextual keywords ``self``, ``static`` and ``parent``
    stand for.
    """

    declaring_class: type
    called_class: typing.Optional[type] = None

    def get_declaring_class(self) -> type:
        return self.declaring_class

    def get_called_class(self) -> type:
        return self.called_class if self.called_class is not None else self.declaring_class

    def get_parent_class(self) -> type:
        for base in self.declaring_class.__bases__:
            if base is not object:
                return base
        raise InvalidContextError(
            "parent", f"{self.declaring_class.__qualname__} does not have a parent class"
        )


_CONTEXTUAL_KEYWORDS = ("self", "static", "parent")

_SCALARS: typing.Mapping[type, TypeIdentifier] = {
    bool: TypeIdentifier.BOOL,
    int: TypeIdentifier.INT,
    float: TypeIdentifier.FLOAT,
    str: TypeIdentifier.STRING,
    bytes: TypeIdentifier.BYTES,
}

_ITERABLE_ORIGINS = (
    collections.abc.Iterable,
    collections.abc.Iterator,
    collections.abc.Collection,
    collections.abc.Generator,
    collections.abc.Reversible,
)


class TypeResolver:
    """
    Resolves an annotation into a :py:class:`TypeDescriptor`.

    :param transparent: generic origins that merely wrap the annotated type and are
                        resolved as their sole argument (e.g. SQLAlchemy's ``Mapped``).
    """

    transparent: typing.Tuple[typing.Any, ...]

    def resolve(
        self, subject: typing.Any, type_context: typing.Optional[TypeContext] = None
    ) -> TypeDescriptor:
        subject = strip_annotated(subject)
        origin = typing.get_origin(subject)

        if origin is typing.Final or (origin is not None and origin in self.transparent):
            args = typing.get_args(subject)
            if len(args) != 1:
                raise UnsupportedTypeError(subject, "wrapper without a single argument")
            return self.resolve(args[0], type_context)

        if is_union(subject):
            members = typing.get_args(subject)
            non_null = [m for m in members if m is not NoneType and m is not None]
            resolved = union(*(self.resolve(m, type_context) for m in non_null))
            return nullable(resolved) if len(non_null) != len(members) else resolved

        if isinstance(subject, _IntersectionForm):
            return intersection(*(self.resolve(m, type_context) for m in subject.__args__))

        if subject is None or subject is NoneType:
            return builtin(TypeIdentifier.NULL)

        if subject is typing.Any:
            return builtin(TypeIdentifier.MIXED)

        if subject is object:
            return builtin(TypeIdentifier.OBJECT)

        if subject is typing.Self:
            return self._resolve_keyword("static", type_context)

        if isinstance(subject, typing.ForwardRef):
            subject = subject.__forward_arg__

        if isinstance(subject, str):
            return self._resolve_name(subject, type_context)

        collection = self._resolve_collection(subject, type_context)
        if collection is not None:
            return collection

        if isinstance(subject, type):
            if subject in _SCALARS:
                return builtin(_SCALARS[subject])
            return self._resolve_class(subject)

        raise UnsupportedTypeError(
            subject,
            "expected a class, a union, an intersection or a supported typing construct",
        )

    def _resolve_class(self, class_: type) -> TypeDescriptor:
        if issubclass(class_, enum.Enum):
            return EnumType(class_)
        return ObjectType(class_)

    def _resolve_keyword(
        self, keyword: str, type_context: typing.Optional[TypeContext]
    ) -> TypeDescriptor:
        if type_context is None:
            raise InvalidContextError(keyword)
        if keyword == "self":
            class_ = type_context.get_declaring_class()
        elif keyword == "static":
            class_ = type_context.get_called_class()
        else:
            class_ = type_context.get_parent_class()
        return self._resolve_class(class_)

    def _resolve_name(
        self, name: str, type_context: typing.Optional[TypeContext]
    ) -> TypeDescriptor:
        name = name.strip()
        if name.lower() in _CONTEXTUAL_KEYWORDS:
            return self._resolve_keyword(name.lower(), type_context)
        if name in ("None", "NoneType"):
            return builtin(TypeIdentifier.NULL)
        for class_, identifier in _SCALARS.items():
            if name == class_.__name__:
                return builtin(identifier)
        if type_context is None:
            raise UnsupportedTypeError(name, "forward reference without a type context")
        module = sys.modules.get(type_context.get_declaring_class().__module__)
        if module is None:
            raise UnsupportedTypeError(name, "declaring module is not loaded")
        try:
            resolved = functools.reduce(getattr, name.split("."), module)
        except AttributeError:
            raise UnsupportedTypeError(
                name, f"not found in module {module.__name__}"
            ) from None
        if isinstance(resolved, str):
            raise UnsupportedTypeError(name, "forward reference resolves to a string")
        return self.resolve(resolved, type_context)

    def _resolve_collection(
        self, subject: typing.Any, type_context: typing.Optional[TypeContext]
    ) -> typing.Optional[CollectionType]:
        origin = typing.get_origin(subject) or subject
        if not isinstance(origin, type) or issubclass(origin, (str, bytes)):
            return None
        if issubclass(origin, tuple) and hasattr(origin, "_fields"):
            # named tuples are records, not collections
            return None
        args = typing.get_args(subject)
        if issubclass(origin, collections.abc.Mapping):
            return array(
                value_type=self._resolve_element(args[1], type_context) if len(args) == 2 else None,
                key_type=self._resolve_element(args[0], type_context) if len(args) == 2 else None,
            )
        if issubclass(origin, (collections.abc.Sequence, collections.abc.Set)):
            return array(
                value_type=self._resolve_element(args[0], type_context) if args else None
            )
        if origin in _ITERABLE_ORIGINS:
            return iterable(
                value_type=self._resolve_element(args[0], type_context) if args else None
            )
        return None

    def _resolve_element(
        self, subject: typing.Any, type_context: typing.Optional[TypeContext]
    ) -> typing.Optional[TypeDescriptor]:
        if subject is Ellipsis:
            return None
        try:
            return self.resolve(subject, type_context)
        except UnsupportedTypeError:
            return None

    def __init__(self, transparent: typing.Iterable[typing.Any] = ()):
        self.transparent = tuple(transparent)
