"""
This package contains a series of interface definitions that need to be
implemented by the collaborators of :py:class:`EntityNormalizer`.

"""
import abc
import typing

from .models import NormalizationContext, RelationshipDescriptor
from .types import TypeDescriptor


class EntityStore(metaclass=abc.ABCMeta):
    """
    An :py:class:`EntityStore` resolves identifiers to live objects and knows how
    the mapped classes relate to each other.  Its methods may block on I/O.
    """

    @abc.abstractmethod
    def get_relationship_schema(
        self, class_: type
    ) -> typing.Mapping[str, RelationshipDescriptor]:
        """
        Returns the relationships of the given class, keyed by attribute name.

        :param type class_: A mapped class.
        :return: A mapping from attribute names to :py:class:`RelationshipDescriptor`.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def find_by_identifier(self, class_: type, identifier: typing.Any) -> typing.Optional[typing.Any]:
        """
        Looks up the object of the given class identified by ``identifier``.

        :param type class_: The class of the object in question.
        :param Any identifier: An implementation-dependent identifier.
        :return: The object, or None if no such object exists.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def get_identifier_fields(self, class_: type) -> typing.Sequence[str]:
        """
        Returns the names of the attributes that make up the identifier of the given
        class, in order.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def is_entity(self, class_or_object: typing.Any) -> bool:
        """
        Tells if the given class (or the class of the given object) is managed by the store.
        """
        ...  # pragma: nocover


class AttributeFilter(metaclass=abc.ABCMeta):
    """
    An :py:class:`AttributeFilter` decides which attribute names are eligible before
    any relationship or type logic takes place.
    """

    @abc.abstractmethod
    def is_attribute_allowed(
        self, class_or_object: typing.Any, attribute: str, ctx: NormalizationContext
    ) -> bool:
        """
        Determines if the given attribute takes part in the current call.

        :param Any class_or_object: The mapped class or an instance of it.
        :param str attribute: An attribute name.
        :param NormalizationContext ctx: The context of the current call.
        :return: A boolean value.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def get_allowed_attributes(
        self, class_or_object: typing.Any, ctx: NormalizationContext
    ) -> typing.Optional[typing.Sequence[str]]:
        """
        Returns the explicit list of attributes to consider, or None when the attributes
        are to be discovered from the object's fields.
        """
        ...  # pragma: nocover


class ValueConverter(metaclass=abc.ABCMeta):
    """
    A :py:class:`ValueConverter` converts plain attribute values to and from their
    external form.
    """

    @abc.abstractmethod
    def to_external(self, value: typing.Any, ctx: NormalizationContext) -> typing.Any:
        """
        Converts an attribute value read from an object into its external form.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def to_internal(
        self, value: typing.Any, type_descr: TypeDescriptor, ctx: NormalizationContext
    ) -> typing.Any:
        """
        Coerces an external value into the shape described by ``type_descr``.

        :raises ConversionError: if the value cannot be coerced.
        """
        ...  # pragma: nocover
