import typing

from .exceptions import UnsupportedTypeError
from .members import MISSING, FieldInfo, MemberResolver, MethodHandle, MutatorMethodHandle
from .models import RelationshipDescriptor
from .types import (
    TypeContext,
    TypeDescriptor,
    TypeIdentifier,
    TypeResolver,
    array,
    builtin,
    nullable,
)
from .utils import allows_none

_DEFAULT_VALUE_TYPES: typing.Sequence[typing.Tuple[typing.Type, TypeIdentifier]] = (
    (bool, TypeIdentifier.BOOL),
    (int, TypeIdentifier.INT),
    (float, TypeIdentifier.FLOAT),
    (str, TypeIdentifier.STRING),
    (bytes, TypeIdentifier.BYTES),
)

_UNKNOWN = object()


def infer_type_from_value(value: typing.Any) -> TypeDescriptor:
    """
    Infers a type from the runtime kind of an observed value.
    """
    for class_, identifier in _DEFAULT_VALUE_TYPES:
        if isinstance(value, class_):
            return builtin(identifier)
    if isinstance(value, (list, tuple, dict, set, frozenset)):
        return array()
    return builtin(TypeIdentifier.OBJECT)


class AttributeTypeExtractor:
    """
    Determines the type an attribute expects, looking at its mutator, its accessor,
    its declared annotation and finally its default value, in that order.
    """

    member_resolver: MemberResolver
    type_resolver: TypeResolver
    _declared_types: typing.Dict[typing.Tuple[type, str], typing.Any]

    def get_type(
        self,
        class_: type,
        attribute: str,
        relationships: typing.Mapping[str, RelationshipDescriptor],
    ) -> typing.Optional[TypeDescriptor]:
        """
        Returns the expected type of ``attribute``, or None when it is unknown and the
        value must be passed through uncoerced.

        :param type class_: The class that holds the attribute.
        :param str attribute: The attribute name.
        :param Mapping relationships: The relationships of the call in progress; those
                                      are handled by the normalizer itself.
        """
        if attribute in relationships:
            return None

        key = (class_, attribute)
        try:
            found = self._declared_types[key]
        except KeyError:
            found = self._declared_types.setdefault(
                key, self._extract_declared_type(class_, attribute)
            )
        return None if found is _UNKNOWN else found

    def _resolve_method_annotation(
        self, class_: type, handle: MethodHandle, annotation: typing.Any
    ) -> typing.Optional[TypeDescriptor]:
        if annotation is MISSING:
            return None
        try:
            return self.type_resolver.resolve(
                annotation, TypeContext(handle.declaring_class, class_)
            )
        except UnsupportedTypeError:
            return None

    def get_mutator_parameter_type(
        self, class_: type, handle: MutatorMethodHandle
    ) -> typing.Optional[TypeDescriptor]:
        return self._resolve_method_annotation(class_, handle, handle.first_parameter().annotation)

    def _resolve_field(self, class_: type, info: FieldInfo) -> typing.Optional[TypeDescriptor]:
        if info.annotation is not MISSING:
            try:
                return self.type_resolver.resolve(
                    info.annotation, TypeContext(info.declaring_class, class_)
                )
            except UnsupportedTypeError:
                pass

        if info.default is MISSING or info.default is None:
            return None
        type_ = infer_type_from_value(info.default)
        if info.annotation is not MISSING and allows_none(info.annotation):
            return nullable(type_)
        return type_

    def _extract_declared_type(self, class_: type, attribute: str) -> typing.Any:
        mutator = self.member_resolver.get_mutator_method(class_, attribute)
        if mutator is not None:
            type_ = self.get_mutator_parameter_type(class_, mutator)
            if type_ is not None:
                return type_

        accessor = self.member_resolver.get_accessor_method(class_, attribute)
        if accessor is not None:
            type_ = self._resolve_method_annotation(
                class_, accessor, accessor.signature().return_annotation
            )
            if type_ is not None:
                return type_

        info = self.member_resolver.get_field(class_, attribute)
        if info is None:
            return _UNKNOWN
        type_ = self._resolve_field(class_, info)
        return _UNKNOWN if type_ is None else type_

    def __init__(
        self,
        member_resolver: typing.Optional[MemberResolver] = None,
        type_resolver: typing.Optional[TypeResolver] = None,
    ):
        self.member_resolver = member_resolver if member_resolver is not None else MemberResolver()
        self.type_resolver = type_resolver if type_resolver is not None else TypeResolver()
        self._declared_types = {}
