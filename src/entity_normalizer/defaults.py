import collections.abc
import datetime
import decimal
import enum
import typing
import uuid

from .exceptions import ConversionError
from .interfaces import AttributeFilter, ValueConverter
from .members import MemberResolver
from .models import Groups, NormalizationContext
from .types import (
    BuiltinType,
    CollectionType,
    EnumType,
    IntersectionType,
    NullableType,
    ObjectType,
    TypeDescriptor,
    TypeIdentifier,
    UnionType,
)
from .utils import english_enumerate

WILDCARD_GROUP = "*"


class DefaultAttributeFilterImpl(AttributeFilter):
    member_resolver: MemberResolver

    def _groups_of(self, class_or_object: typing.Any, attribute: str) -> typing.FrozenSet[str]:
        class_ = class_or_object if isinstance(class_or_object, type) else type(class_or_object)
        names: typing.FrozenSet[str] = frozenset()
        for marker in self.member_resolver.attribute_markers(class_, attribute):
            if isinstance(marker, Groups):
                names |= marker.names
        return names

    def _in_allowed_groups(
        self, class_or_object: typing.Any, attribute: str, ctx: NormalizationContext
    ) -> bool:
        groups = self._groups_of(class_or_object, attribute)
        if WILDCARD_GROUP in ctx.options.allowed_groups:
            return bool(groups)
        return not groups.isdisjoint(ctx.options.allowed_groups)

    def is_attribute_allowed(
        self, class_or_object: typing.Any, attribute: str, ctx: NormalizationContext
    ) -> bool:
        options = ctx.options
        if attribute in options.ignored_attributes:
            return False
        if options.attributes is not None:
            return attribute in options.attributes
        if options.allowed_groups:
            return self._in_allowed_groups(class_or_object, attribute, ctx)
        return True

    def get_allowed_attributes(
        self, class_or_object: typing.Any, ctx: NormalizationContext
    ) -> typing.Optional[typing.Sequence[str]]:
        options = ctx.options
        if options.attributes is not None:
            return [a for a in options.attributes if a not in options.ignored_attributes]
        if options.allowed_groups:
            return [
                a
                for a in self.member_resolver.enumerate_fields(class_or_object)
                if self.is_attribute_allowed(class_or_object, a, ctx)
            ]
        return None

    def __init__(self, member_resolver: MemberResolver):
        self.member_resolver = member_resolver


_TRUTHY = frozenset(["1", "true", "yes", "on"])
_FALSY = frozenset(["0", "false", "no", "off", ""])


class DefaultValueConverterImpl(ValueConverter):
    def to_external(self, value: typing.Any, ctx: NormalizationContext) -> typing.Any:
        if isinstance(value, enum.Enum):
            return value.value
        elif isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
            return value.isoformat()
        elif isinstance(value, (decimal.Decimal, uuid.UUID)):
            return str(value)
        elif isinstance(value, collections.abc.Mapping):
            return {k: self.to_external(v, ctx) for k, v in value.items()}
        elif isinstance(value, (list, tuple)):
            return [self.to_external(v, ctx) for v in value]
        return value

    def to_internal(
        self, value: typing.Any, type_descr: TypeDescriptor, ctx: NormalizationContext
    ) -> typing.Any:
        try:
            return self._convert(value, type_descr, ctx)
        except ConversionError:
            raise
        except (TypeError, ValueError, ArithmeticError) as e:
            raise ConversionError(type_descr, value) from e

    def _convert(
        self, value: typing.Any, type_descr: TypeDescriptor, ctx: NormalizationContext
    ) -> typing.Any:
        if value is None:
            if type_descr.allows_null:
                return None
            raise TypeError("null is not allowed")
        if isinstance(type_descr, NullableType):
            return self._convert(value, type_descr.wrapped, ctx)
        elif isinstance(type_descr, UnionType):
            return self._convert_union(value, type_descr, ctx)
        elif isinstance(type_descr, IntersectionType):
            return value
        elif isinstance(type_descr, CollectionType):
            return self._convert_collection(value, type_descr, ctx)
        elif isinstance(type_descr, BuiltinType):
            return self._convert_scalar(value, type_descr.identifier)
        elif isinstance(type_descr, EnumType):
            return self._convert_enum(value, type_descr.class_)
        elif isinstance(type_descr, ObjectType):
            return self._convert_object(value, type_descr.class_)
        return value

    def _convert_union(
        self, value: typing.Any, type_descr: UnionType, ctx: NormalizationContext
    ) -> typing.Any:
        for member in type_descr.types:
            if self._matches(value, member):
                return value
        for member in type_descr.types:
            try:
                return self._convert(value, member, ctx)
            except (TypeError, ValueError, ArithmeticError, ConversionError):
                continue
        raise TypeError(
            f"{value!r} does not fit any of {english_enumerate((str(t) for t in type_descr.types), ', or ')}"
        )

    def _matches(self, value: typing.Any, type_descr: TypeDescriptor) -> bool:
        if isinstance(type_descr, NullableType):
            return self._matches(value, type_descr.wrapped)
        elif isinstance(type_descr, ObjectType):
            return isinstance(value, type_descr.class_)
        elif isinstance(type_descr, CollectionType):
            return isinstance(value, (list, tuple, collections.abc.Mapping)) and type_descr.value_type is None
        elif isinstance(type_descr, BuiltinType):
            return {
                TypeIdentifier.INT: lambda v: isinstance(v, int) and not isinstance(v, bool),
                TypeIdentifier.FLOAT: lambda v: isinstance(v, float),
                TypeIdentifier.BOOL: lambda v: isinstance(v, bool),
                TypeIdentifier.STRING: lambda v: isinstance(v, str),
                TypeIdentifier.BYTES: lambda v: isinstance(v, bytes),
                TypeIdentifier.MIXED: lambda v: True,
                TypeIdentifier.OBJECT: lambda v: True,
            }.get(type_descr.identifier, lambda v: False)(value)
        return False

    def _convert_scalar(self, value: typing.Any, identifier: TypeIdentifier) -> typing.Any:
        if identifier is TypeIdentifier.INT:
            if isinstance(value, bool):
                raise TypeError("a boolean is not an integer")
            if isinstance(value, int):
                return value
            if isinstance(value, float):
                if not value.is_integer():
                    raise ValueError(f"{value} has a fractional part")
                return int(value)
            if isinstance(value, str):
                return int(value.strip())
            raise TypeError(f"{type(value).__name__} is not convertible to an integer")
        elif identifier is TypeIdentifier.FLOAT:
            if isinstance(value, bool):
                raise TypeError("a boolean is not a float")
            if isinstance(value, (int, float, decimal.Decimal)):
                return float(value)
            if isinstance(value, str):
                return float(value.strip())
            raise TypeError(f"{type(value).__name__} is not convertible to a float")
        elif identifier is TypeIdentifier.BOOL:
            if isinstance(value, bool):
                return value
            if isinstance(value, int) and value in (0, 1):
                return bool(value)
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in _TRUTHY:
                    return True
                if lowered in _FALSY:
                    return False
            raise ValueError(f"{value!r} is not a boolean")
        elif identifier is TypeIdentifier.STRING:
            if isinstance(value, str):
                return value
            if isinstance(value, (int, float, decimal.Decimal)) and not isinstance(value, bool):
                return str(value)
            raise TypeError(f"{type(value).__name__} is not convertible to a string")
        elif identifier is TypeIdentifier.BYTES:
            if isinstance(value, bytes):
                return value
            if isinstance(value, str):
                return value.encode("utf-8")
            raise TypeError(f"{type(value).__name__} is not convertible to bytes")
        elif identifier is TypeIdentifier.NULL:
            raise TypeError("only null is allowed")
        return value

    def _convert_collection(
        self, value: typing.Any, type_descr: CollectionType, ctx: NormalizationContext
    ) -> typing.Any:
        if type_descr.identifier is TypeIdentifier.ITERABLE:
            if isinstance(value, (str, bytes)) or not isinstance(value, collections.abc.Iterable):
                raise TypeError(f"{type(value).__name__} is not iterable")
            return value
        if isinstance(value, collections.abc.Mapping):
            if type_descr.value_type is None and type_descr.key_type is None:
                return dict(value)
            return {
                (
                    self._convert(k, type_descr.key_type, ctx) if type_descr.key_type is not None else k
                ): (
                    self._convert(v, type_descr.value_type, ctx)
                    if type_descr.value_type is not None
                    else v
                )
                for k, v in value.items()
            }
        if isinstance(value, (list, tuple, set, frozenset)):
            if type_descr.value_type is None:
                return list(value)
            return [self._convert(v, type_descr.value_type, ctx) for v in value]
        raise TypeError(f"{type(value).__name__} is not an array")

    def _convert_enum(self, value: typing.Any, class_: typing.Type[enum.Enum]) -> typing.Any:
        if isinstance(value, class_):
            return value
        try:
            return class_(value)
        except ValueError:
            if isinstance(value, str) and value in class_.__members__:
                return class_.__members__[value]
            raise

    def _convert_object(self, value: typing.Any, class_: type) -> typing.Any:
        if isinstance(value, class_):
            return value
        if isinstance(value, str):
            if issubclass(class_, datetime.datetime):
                return class_.fromisoformat(value)
            elif issubclass(class_, datetime.date):
                return class_.fromisoformat(value)
            elif issubclass(class_, datetime.time):
                return class_.fromisoformat(value)
            elif issubclass(class_, decimal.Decimal):
                return class_(value)
            elif issubclass(class_, uuid.UUID):
                return class_(value)
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            if issubclass(class_, decimal.Decimal):
                return class_(str(value))
        # structured values of other classes are left for the caller to build
        return value
