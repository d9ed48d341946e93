import collections.abc
import logging
import typing

from .defaults import DefaultAttributeFilterImpl, DefaultValueConverterImpl
from .exceptions import (
    ConversionError,
    DeepTraversalDisabledError,
    MissingIdentifierError,
    NoAccessorAvailableError,
    UninitializedAttributeError,
)
from .extractor import AttributeTypeExtractor
from .interfaces import AttributeFilter, EntityStore, ValueConverter
from .members import MemberResolver, MutatorMethodHandle
from .models import (
    Cardinality,
    Cleared,
    DeepNormalize,
    Diagnostic,
    DiagnosticKind,
    Diagnostics,
    Embedded,
    Identifiers,
    NormalizationContext,
    NormalizerOptions,
    RelationshipDescriptor,
    RelationshipValue,
    SingleId,
    SingleRef,
    to_external,
)

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, bytes, bytearray, int, float, complex, bool)


def is_normalizable_object(data: typing.Any) -> bool:
    return not (data is None or isinstance(data, type) or isinstance(data, _SCALAR_TYPES))


def is_empty_reference(value: typing.Any) -> bool:
    """
    Tells if a to-one input value means "no related object".  Zero is a valid
    identifier and therefore not empty.
    """
    if value is None or value == "":
        return True
    if isinstance(value, (str, bytes)):
        return False
    return isinstance(value, collections.abc.Collection) and len(value) == 0


def classify_to_one(value: typing.Any, descr: RelationshipDescriptor) -> RelationshipValue:
    if is_empty_reference(value):
        return Cleared()
    elif isinstance(value, descr.target):
        return SingleRef(value)
    else:
        return SingleId(value)


def as_member_list(value: typing.Any) -> typing.List[typing.Any]:
    if value is None:
        return []
    if isinstance(value, (str, bytes, collections.abc.Mapping)) or not isinstance(
        value, collections.abc.Iterable
    ):
        return [value]
    return list(value)


class EntityNormalizer:
    """
    Converts between mapped objects and flat mappings.

    Normalization reads the attributes of an object through its accessors or public
    fields.  Denormalization writes the entries of a mapping into an existing object
    through its mutators or public fields, resolving related objects through the
    entity store.  Input that cannot be applied is skipped, logged, and reported to
    the optional :py:class:`Diagnostics` collector of the call.
    """

    store: EntityStore
    attribute_filter: AttributeFilter
    value_converter: ValueConverter
    member_resolver: MemberResolver
    type_extractor: AttributeTypeExtractor
    default_options: NormalizerOptions

    def _create_context(
        self,
        class_: type,
        options: typing.Optional[NormalizerOptions],
        diagnostics: typing.Optional[Diagnostics],
    ) -> NormalizationContext:
        return NormalizationContext(
            class_=class_,
            relationships=self.store.get_relationship_schema(class_),
            options=options if options is not None else self.default_options,
            diagnostics=diagnostics,
        )

    def _report(
        self,
        ctx: NormalizationContext,
        level: int,
        kind: DiagnosticKind,
        attribute: str,
        message: str,
        value: typing.Any = None,
    ) -> None:
        logger.log(level, "%s.%s: %s", ctx.class_.__qualname__, attribute, message)
        ctx.report(
            Diagnostic(
                kind=kind, class_=ctx.class_, attribute=attribute, message=message, value=value
            )
        )

    def is_deep_normalization_enabled(self, class_: type, attribute: str) -> bool:
        marker = self.member_resolver.find_marker(class_, attribute, DeepNormalize)
        return marker is not None and marker.enabled

    def _get_identifier_fields(self, class_: type, ctx: NormalizationContext) -> typing.Sequence[str]:
        key = ("identifier_fields", class_)
        try:
            return ctx.lookups[key]
        except KeyError:
            return ctx.lookups.setdefault(key, tuple(self.store.get_identifier_fields(class_)))

    def _get_single_identifier(self, obj: typing.Any, ctx: NormalizationContext) -> typing.Any:
        fields = self._get_identifier_fields(type(obj), ctx)
        if len(fields) != 1:
            return None
        handle = self.member_resolver.resolve_accessor(obj, fields[0])
        if handle is None:
            return None
        try:
            return handle.get(obj)
        except UninitializedAttributeError:
            return None

    def _normalize_relationship(
        self,
        owner: typing.Any,
        value: typing.Any,
        descr: RelationshipDescriptor,
        ctx: NormalizationContext,
    ) -> RelationshipValue:
        if descr.cardinality is Cardinality.MANY:
            members = as_member_list(value)
            if not ctx.form_mode:
                return Embedded(tuple(members))
            ids = []
            for member in members:
                id_ = self._get_single_identifier(member, ctx)
                if id_ is not None:
                    ids.append(id_)
            return Identifiers(tuple(ids))
        else:
            if value is None:
                return Cleared()
            if ctx.form_mode:
                id_ = self._get_single_identifier(value, ctx)
                if id_ is None:
                    raise MissingIdentifierError(type(owner), descr.name)
                return SingleId(id_)
            return SingleRef(value)

    def _should_normalize(self, data: typing.Any, attribute: str, ctx: NormalizationContext) -> bool:
        if not self.attribute_filter.is_attribute_allowed(data, attribute, ctx):
            return False
        if attribute in ctx.relationships and not self.is_deep_normalization_enabled(
            type(data), attribute
        ):
            return False
        return self.member_resolver.resolve_accessor(data, attribute) is not None

    def get_attribute_value(
        self, data: typing.Any, attribute: str, ctx: NormalizationContext
    ) -> typing.Any:
        """
        Reads a single attribute of ``data`` in its normalized form.

        :raises DeepTraversalDisabledError: if the attribute is a relationship that is
                                            not marked for deep normalization.
        :raises NoAccessorAvailableError: if the attribute cannot be read.
        :raises UninitializedAttributeError: if the field has never been assigned.
        :raises MissingIdentifierError: if, in form mode, the related object of a to-one
                                        relationship has no single identifier.
        """
        descr = ctx.get_relationship(attribute)
        if descr is not None and not self.is_deep_normalization_enabled(type(data), attribute):
            raise DeepTraversalDisabledError(type(data), attribute)
        value = self.member_resolver.read(data, attribute)
        if descr is not None:
            return to_external(self._normalize_relationship(data, value, descr, ctx))
        return self.value_converter.to_external(value, ctx)

    def normalize(
        self,
        data: typing.Any,
        options: typing.Optional[NormalizerOptions] = None,
        diagnostics: typing.Optional[Diagnostics] = None,
    ) -> typing.Dict[str, typing.Any]:
        """
        Converts an object into a flat mapping of its visible attributes.

        :param Any data: The object to normalize.
        :param NormalizerOptions options: Overrides the default options for this call.
        :param Diagnostics diagnostics: A collector that receives the skipped attributes.
        :return: A dict keyed by attribute name, in enumeration order.
        """
        if not is_normalizable_object(data):
            raise TypeError(f"cannot normalize {data!r}; an object is expected")

        ctx = self._create_context(type(data), options, diagnostics)
        try:
            candidates = self.attribute_filter.get_allowed_attributes(data, ctx)
            if candidates is None:
                candidates = self.member_resolver.enumerate_fields(data)
            result: typing.Dict[str, typing.Any] = {}
            for attribute in candidates:
                if attribute in result or not self._should_normalize(data, attribute, ctx):
                    continue
                try:
                    result[attribute] = self.get_attribute_value(data, attribute, ctx)
                except UninitializedAttributeError as e:
                    self._report(
                        ctx, logging.DEBUG, DiagnosticKind.UNINITIALIZED_ATTRIBUTE, attribute, e.message
                    )
                except MissingIdentifierError as e:
                    self._report(
                        ctx, logging.WARNING, DiagnosticKind.MISSING_IDENTIFIER, attribute, e.message
                    )
            return result
        finally:
            ctx.clear()

    def _find_related(
        self,
        identifier: typing.Any,
        descr: RelationshipDescriptor,
        ctx: NormalizationContext,
    ) -> typing.Optional[typing.Any]:
        found = self.store.find_by_identifier(descr.target, identifier)
        if found is None or not isinstance(found, descr.target):
            self._report(
                ctx,
                logging.WARNING,
                DiagnosticKind.UNRESOLVED_IDENTIFIER,
                descr.name,
                f"no {descr.target.__qualname__} identified by {identifier!r}",
                identifier,
            )
            return None
        return found

    def _denormalize_to_one(
        self,
        target: typing.Any,
        value: typing.Any,
        descr: RelationshipDescriptor,
        ctx: NormalizationContext,
    ) -> None:
        rel_value = classify_to_one(value, descr)
        if isinstance(rel_value, Cleared):
            self.set_attribute_value(target, descr.name, None, ctx)
        elif isinstance(rel_value, SingleRef):
            self.set_attribute_value(target, descr.name, rel_value.object, ctx)
        elif isinstance(rel_value, SingleId):
            found = self._find_related(rel_value.identifier, descr, ctx)
            if found is not None:
                self.set_attribute_value(target, descr.name, found, ctx)

    def _denormalize_to_many(
        self,
        target: typing.Any,
        value: typing.Any,
        descr: RelationshipDescriptor,
        ctx: NormalizationContext,
    ) -> None:
        if not descr.is_owning_side:
            self._report(
                ctx,
                logging.DEBUG,
                DiagnosticKind.READ_ONLY_RELATIONSHIP,
                descr.name,
                "the relationship is written from the other side; input ignored",
                value,
            )
            return

        members = []
        for item in as_member_list(value):
            if isinstance(item, descr.target):
                members.append(item)
            else:
                found = self._find_related(item, descr, ctx)
                if found is not None:
                    members.append(found)

        try:
            current = self.member_resolver.read(target, descr.name)
        except (NoAccessorAvailableError, AttributeError):
            current = None
        if current is not None and callable(getattr(current, "clear", None)):
            adder = getattr(current, "append", None) or getattr(current, "add", None)
            if callable(adder):
                current.clear()
                for member in members:
                    adder(member)
                return
        self.set_attribute_value(target, descr.name, members, ctx)

    def _denormalize_plain(
        self, class_: type, target: typing.Any, attribute: str, value: typing.Any, ctx: NormalizationContext
    ) -> None:
        type_ = self.type_extractor.get_type(class_, attribute, ctx.relationships)
        # None is not coerced; the write step decides whether it is accepted
        if type_ is not None and value is not None:
            try:
                value = self.value_converter.to_internal(value, type_, ctx)
            except ConversionError as e:
                self._report(
                    ctx, logging.WARNING, DiagnosticKind.CONVERSION_FAILED, attribute, e.message, value
                )
                return
        self.set_attribute_value(target, attribute, value, ctx)

    def set_attribute_value(
        self, target: typing.Any, attribute: str, value: typing.Any, ctx: NormalizationContext
    ) -> None:
        """
        Writes a value through the mutator of the attribute, or else through its
        public field.  Attributes that cannot be written are reported and skipped.
        """
        handle = self.member_resolver.resolve_mutator(target, attribute)
        if handle is None:
            self._report(
                ctx,
                logging.DEBUG,
                DiagnosticKind.UNKNOWN_ATTRIBUTE,
                attribute,
                "no mutator or writable field; input ignored",
                value,
            )
            return
        if value is None and isinstance(handle, MutatorMethodHandle):
            param_type = self.type_extractor.get_mutator_parameter_type(type(target), handle)
            if param_type is not None and not param_type.allows_null:
                self._report(
                    ctx,
                    logging.WARNING,
                    DiagnosticKind.NULL_REJECTED,
                    attribute,
                    f"{handle.method_name}() does not accept None",
                )
                return
        handle.set(target, value)

    def denormalize(
        self,
        data: typing.Mapping[str, typing.Any],
        class_: type,
        target: typing.Any,
        options: typing.Optional[NormalizerOptions] = None,
        diagnostics: typing.Optional[Diagnostics] = None,
    ) -> typing.Any:
        """
        Populates ``target`` with the entries of ``data``.

        :param Mapping data: The flat input.
        :param type class_: The class ``target`` is handled as.
        :param Any target: The object to populate; it is never created by the normalizer.
        :param NormalizerOptions options: Overrides the default options for this call.
        :param Diagnostics diagnostics: A collector that receives the skipped input.
        :return: ``target``.
        """
        if not isinstance(data, collections.abc.Mapping):
            raise TypeError(f"cannot denormalize {data!r}; a mapping is expected")

        ctx = self._create_context(class_, options, diagnostics)
        try:
            for attribute, value in data.items():
                if not isinstance(attribute, str):
                    self._report(
                        ctx,
                        logging.DEBUG,
                        DiagnosticKind.UNKNOWN_ATTRIBUTE,
                        repr(attribute),
                        "attribute names must be strings; input ignored",
                        value,
                    )
                    continue
                if not self.attribute_filter.is_attribute_allowed(class_, attribute, ctx):
                    continue
                descr = ctx.get_relationship(attribute)
                if descr is None:
                    self._denormalize_plain(class_, target, attribute, value, ctx)
                elif descr.cardinality is Cardinality.ONE:
                    self._denormalize_to_one(target, value, descr, ctx)
                else:
                    self._denormalize_to_many(target, value, descr, ctx)
            return target
        finally:
            ctx.clear()

    def supports_normalization(self, data: typing.Any) -> bool:
        return is_normalizable_object(data) and self.store.is_entity(data)

    def supports_denormalization(self, class_: typing.Any) -> bool:
        return isinstance(class_, type) and self.store.is_entity(class_)

    def __init__(
        self,
        store: EntityStore,
        attribute_filter: typing.Optional[AttributeFilter] = None,
        value_converter: typing.Optional[ValueConverter] = None,
        member_resolver: typing.Optional[MemberResolver] = None,
        type_extractor: typing.Optional[AttributeTypeExtractor] = None,
        default_options: typing.Optional[NormalizerOptions] = None,
    ):
        self.store = store
        self.member_resolver = member_resolver if member_resolver is not None else MemberResolver()
        self.attribute_filter = (
            attribute_filter
            if attribute_filter is not None
            else DefaultAttributeFilterImpl(self.member_resolver)
        )
        self.value_converter = (
            value_converter if value_converter is not None else DefaultValueConverterImpl()
        )
        self.type_extractor = (
            type_extractor
            if type_extractor is not None
            else AttributeTypeExtractor(member_resolver=self.member_resolver)
        )
        self.default_options = default_options if default_options is not None else NormalizerOptions()
