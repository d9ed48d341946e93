"""
Locates the members through which an attribute of an arbitrary class can be read
and written: accessor / mutator methods found by naming convention, or plain fields.
"""
import abc
import collections.abc
import dataclasses
import enum
import inspect
import re
import typing

from .exceptions import NoAccessorAvailableError, UninitializedAttributeError
from .models import MARKERS_KEY
from .utils import annotated_metadata, camelize, is_classvar, is_final, snakeize

T = typing.TypeVar("T")

MISSING: typing.Any = inspect.Parameter.empty

_MANGLED_PRIVATE = re.compile(r"^_[A-Za-z0-9]+__")

_PLAIN_DEFAULT_TYPES = (bool, int, float, complex, str, bytes, list, tuple, dict, set, frozenset)


class MemberKind(enum.Enum):
    FIELD = "field"
    ACCESSOR = "accessor"
    MUTATOR = "mutator"


class MemberHandle(metaclass=abc.ABCMeta):
    owner: type
    name: str

    @property
    @abc.abstractmethod
    def kind(self) -> MemberKind:
        ...  # pragma: nocover


@dataclasses.dataclass(frozen=True)
class FieldHandle(MemberHandle):
    owner: type
    name: str
    writable: bool

    @property
    def kind(self) -> MemberKind:
        return MemberKind.FIELD

    def get(self, target: typing.Any) -> typing.Any:
        try:
            return getattr(target, self.name)
        except AttributeError:
            # annotated or slotted fields that were never assigned
            raise UninitializedAttributeError(self.owner, self.name) from None

    def set(self, target: typing.Any, value: typing.Any) -> None:
        if not self.writable:
            raise AttributeError(f"{self.owner.__qualname__}.{self.name} is read-only")
        setattr(target, self.name, value)


@dataclasses.dataclass(frozen=True)
class MethodHandle(MemberHandle):
    owner: type
    name: str
    method_name: str
    prefix: str
    declaring_class: type
    function: typing.Callable[..., typing.Any]

    def signature(self) -> inspect.Signature:
        try:
            return inspect.signature(self.function, eval_str=True)
        except (NameError, SyntaxError, TypeError, AttributeError):
            return inspect.signature(self.function)


@dataclasses.dataclass(frozen=True)
class AccessorMethodHandle(MethodHandle):
    @property
    def kind(self) -> MemberKind:
        return MemberKind.ACCESSOR

    def get(self, target: typing.Any) -> typing.Any:
        return getattr(target, self.method_name)()


@dataclasses.dataclass(frozen=True)
class MutatorMethodHandle(MethodHandle):
    @property
    def kind(self) -> MemberKind:
        return MemberKind.MUTATOR

    def first_parameter(self) -> inspect.Parameter:
        return list(self.signature().parameters.values())[1]

    def set(self, target: typing.Any, value: typing.Any) -> None:
        getattr(target, self.method_name)(value)


ReadHandle = typing.Union[FieldHandle, AccessorMethodHandle]
WriteHandle = typing.Union[FieldHandle, MutatorMethodHandle]


def _parameters_after_self(function: typing.Callable[..., typing.Any]) -> typing.List[inspect.Parameter]:
    try:
        parameters = list(inspect.signature(function).parameters.values())
    except (TypeError, ValueError):
        return []
    return parameters[1:]


def takes_no_required_arguments(function: typing.Callable[..., typing.Any]) -> bool:
    return all(
        p.default is not inspect.Parameter.empty
        or p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        for p in _parameters_after_self(function)
    )


def takes_an_argument(function: typing.Callable[..., typing.Any]) -> bool:
    return any(
        p.kind
        in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.VAR_POSITIONAL,
        )
        for p in _parameters_after_self(function)
    )


@dataclasses.dataclass(frozen=True)
class Probe:
    """
    One step of a convention-based member lookup: how to spell the candidate
    method name, and what its signature must look like.
    """

    prefix: str
    spell: typing.Callable[[str, str], str]
    accepts: typing.Callable[[typing.Callable[..., typing.Any]], bool]

    def method_name(self, attribute: str) -> str:
        return self.spell(attribute, self.prefix)


ACCESSOR_PROBES: typing.Tuple[Probe, ...] = (
    Probe("get", camelize, takes_no_required_arguments),
    Probe("get", snakeize, takes_no_required_arguments),
    Probe("is", camelize, takes_no_required_arguments),
    Probe("is", snakeize, takes_no_required_arguments),
    Probe("", camelize, takes_no_required_arguments),
    Probe("", snakeize, takes_no_required_arguments),
)

MUTATOR_PROBES: typing.Tuple[Probe, ...] = (
    Probe("set", camelize, takes_an_argument),
    Probe("set", snakeize, takes_an_argument),
)


@dataclasses.dataclass
class FieldInfo:
    name: str
    declaring_class: type
    annotation: typing.Any = MISSING
    default: typing.Any = MISSING
    readable: bool = True
    writable: bool = True
    markers: typing.Tuple[typing.Any, ...] = ()

    @property
    def is_public(self) -> bool:
        return not self.name.startswith("_")


def is_visible_name(name: str) -> bool:
    if name.startswith("__"):
        return False
    return _MANGLED_PRIVATE.match(name) is None


def own_annotations(klass: type) -> typing.Mapping[str, typing.Any]:
    try:
        return inspect.get_annotations(klass, eval_str=True)
    except (NameError, SyntaxError, TypeError, AttributeError):
        return klass.__dict__.get("__annotations__", {})


def _markers_in(container: typing.Any) -> typing.Tuple[typing.Any, ...]:
    if isinstance(container, collections.abc.Mapping):
        found = container.get(MARKERS_KEY, ())
        return tuple(found) if isinstance(found, (list, tuple)) else (found,)
    return ()


def _property_annotation(prop: typing.Any) -> typing.Any:
    fset = getattr(prop, "fset", None)
    fget = getattr(prop, "fget", None)
    try:
        if fset is not None:
            parameters = list(inspect.signature(fset, eval_str=True).parameters.values())
            if len(parameters) >= 2:
                return parameters[1].annotation
        if fget is not None:
            return inspect.signature(fget, eval_str=True).return_annotation
    except (NameError, SyntaxError, TypeError, AttributeError, ValueError):
        pass
    return MISSING


def inspect_fields(class_: type) -> "collections.OrderedDict[str, FieldInfo]":
    """
    Collects the fields a class declares, base classes first: annotated attributes,
    slots, data descriptors, properties and builtin-valued class defaults.
    """
    fields: "collections.OrderedDict[str, FieldInfo]" = collections.OrderedDict()
    classvars: typing.Set[str] = set()
    frozen = False
    dataclass_fields: typing.Mapping[str, dataclasses.Field] = {}
    if dataclasses.is_dataclass(class_):
        frozen = class_.__dataclass_params__.frozen  # type: ignore
        dataclass_fields = {f.name: f for f in dataclasses.fields(class_)}

    def field(name: str, klass: type) -> FieldInfo:
        info = fields.get(name)
        if info is None:
            info = fields[name] = FieldInfo(name=name, declaring_class=klass)
        return info

    for klass in reversed(class_.__mro__):
        if klass is object:
            continue
        ns = vars(klass)
        for name, annotation in own_annotations(klass).items():
            if not is_visible_name(name):
                continue
            if is_classvar(annotation):
                classvars.add(name)
                fields.pop(name, None)
                continue
            info = field(name, klass)
            info.annotation = annotation
            info.declaring_class = klass
            info.markers = info.markers + annotated_metadata(annotation)
            if is_final(annotation):
                info.writable = False
        slots = ns.get("__slots__", ())
        for name in (slots,) if isinstance(slots, str) else slots:
            if is_visible_name(name) and name not in classvars:
                field(name, klass)
        for name, attr in ns.items():
            if not is_visible_name(name) or name in classvars:
                continue
            if isinstance(attr, (staticmethod, classmethod)) or inspect.isfunction(attr):
                continue
            if hasattr(attr, "fget") and hasattr(attr, "fset"):
                info = field(name, klass)
                info.declaring_class = klass
                info.readable = attr.fget is not None
                info.writable = attr.fset is not None
                if info.annotation is MISSING:
                    info.annotation = _property_annotation(attr)
            elif hasattr(type(attr), "__set__"):
                info = field(name, klass)
                info.markers = info.markers + _markers_in(getattr(attr, "info", None))
            elif attr is None or isinstance(attr, _PLAIN_DEFAULT_TYPES + (enum.Enum,)):
                if name not in fields and name.isupper():
                    continue
                info = field(name, klass)
                info.default = attr

    for name, dc_field in dataclass_fields.items():
        info = fields.get(name)
        if info is None:
            continue
        info.markers = info.markers + _markers_in(dc_field.metadata)
        if frozen:
            info.writable = False
        if info.default is MISSING:
            if dc_field.default is not dataclasses.MISSING:
                info.default = dc_field.default
            elif dc_field.default_factory is not dataclasses.MISSING:
                info.default = dc_field.default_factory()

    for info in fields.values():
        if not info.is_public:
            info.readable = info.writable = False
    return fields


class MemberResolver:
    """
    Resolves, for a class and an attribute name, the member through which the
    attribute can be read or written.  Results depend on the class shape only and
    are memoized for the lifetime of the resolver.
    """

    accessor_probes: typing.Sequence[Probe]
    mutator_probes: typing.Sequence[Probe]
    _fields: typing.Dict[type, "collections.OrderedDict[str, FieldInfo]"]
    _accessor_methods: typing.Dict[typing.Tuple[type, str], typing.Optional[AccessorMethodHandle]]
    _mutator_methods: typing.Dict[typing.Tuple[type, str], typing.Optional[MutatorMethodHandle]]

    def get_fields(self, class_: type) -> "collections.OrderedDict[str, FieldInfo]":
        try:
            return self._fields[class_]
        except KeyError:
            return self._fields.setdefault(class_, inspect_fields(class_))

    def get_field(self, class_: type, name: str) -> typing.Optional[FieldInfo]:
        return self.get_fields(class_).get(name)

    def _find_method(
        self, class_: type, probes: typing.Sequence[Probe], name: str
    ) -> typing.Optional[typing.Tuple[Probe, str, type, typing.Callable[..., typing.Any]]]:
        tried: typing.Set[str] = set()
        for probe in probes:
            method_name = probe.method_name(name)
            if not method_name or method_name in tried:
                continue
            tried.add(method_name)
            for klass in class_.__mro__:
                if method_name in vars(klass):
                    attr = vars(klass)[method_name]
                    break
            else:
                continue
            if not inspect.isfunction(attr):
                # static / class methods, properties and plain values are not instance methods
                continue
            if probe.accepts(attr):
                return probe, method_name, klass, attr
        return None

    def get_accessor_method(self, class_: type, name: str) -> typing.Optional[AccessorMethodHandle]:
        key = (class_, name)
        try:
            return self._accessor_methods[key]
        except KeyError:
            pass
        found = self._find_method(class_, self.accessor_probes, name)
        handle = (
            AccessorMethodHandle(
                owner=class_,
                name=name,
                method_name=found[1],
                prefix=found[0].prefix,
                declaring_class=found[2],
                function=found[3],
            )
            if found is not None
            else None
        )
        return self._accessor_methods.setdefault(key, handle)

    def get_mutator_method(self, class_: type, name: str) -> typing.Optional[MutatorMethodHandle]:
        key = (class_, name)
        try:
            return self._mutator_methods[key]
        except KeyError:
            pass
        found = self._find_method(class_, self.mutator_probes, name)
        handle = (
            MutatorMethodHandle(
                owner=class_,
                name=name,
                method_name=found[1],
                prefix=found[0].prefix,
                declaring_class=found[2],
                function=found[3],
            )
            if found is not None
            else None
        )
        return self._mutator_methods.setdefault(key, handle)

    def _instance_field(self, target: typing.Any, name: str) -> typing.Optional[FieldHandle]:
        if isinstance(target, type) or not is_visible_name(name) or name.startswith("_"):
            return None
        if name not in getattr(target, "__dict__", {}):
            return None
        frozen = dataclasses.is_dataclass(target) and type(target).__dataclass_params__.frozen  # type: ignore
        return FieldHandle(owner=type(target), name=name, writable=not frozen)

    def resolve_accessor(self, class_or_object: typing.Any, name: str) -> typing.Optional[ReadHandle]:
        """
        Returns the member through which ``name`` is read: an accessor method, or else
        a public readable field.  None means that the attribute is not externally visible.
        """
        class_ = class_or_object if isinstance(class_or_object, type) else type(class_or_object)
        method = self.get_accessor_method(class_, name)
        if method is not None:
            return method
        info = self.get_field(class_, name)
        if info is not None and info.readable:
            return FieldHandle(owner=class_, name=name, writable=info.writable)
        return self._instance_field(class_or_object, name)

    def resolve_mutator(self, class_or_object: typing.Any, name: str) -> typing.Optional[WriteHandle]:
        """
        Returns the member through which ``name`` is written: a mutator method, or else
        a public field that is settable from outside its class.
        """
        class_ = class_or_object if isinstance(class_or_object, type) else type(class_or_object)
        method = self.get_mutator_method(class_, name)
        if method is not None:
            return method
        info = self.get_field(class_, name)
        if info is not None:
            if info.writable:
                return FieldHandle(owner=class_, name=name, writable=True)
            return None
        handle = self._instance_field(class_or_object, name)
        return handle if handle is not None and handle.writable else None

    def read(self, target: typing.Any, name: str) -> typing.Any:
        handle = self.resolve_accessor(target, name)
        if handle is None:
            raise NoAccessorAvailableError(type(target), name)
        return handle.get(target)

    def enumerate_fields(self, class_or_object: typing.Any) -> typing.List[str]:
        """
        Returns the names of the public and protected fields of a class (or of an
        object, including its instance attributes), in declaration order.
        """
        class_ = class_or_object if isinstance(class_or_object, type) else type(class_or_object)
        names = list(self.get_fields(class_))
        if not isinstance(class_or_object, type):
            known = set(names)
            for name in getattr(class_or_object, "__dict__", {}):
                if name not in known and is_visible_name(name):
                    names.append(name)
        return names

    def field_annotation(self, class_: type, name: str) -> typing.Any:
        """
        Returns the declared annotation of a field, or :py:data:`MISSING` if it has none.
        """
        info = self.get_field(class_, name)
        return info.annotation if info is not None else MISSING

    def field_default(self, class_: type, name: str) -> typing.Any:
        """
        Returns the runtime default value of a field.

        :raises LookupError: if no default is observable.
        """
        info = self.get_field(class_, name)
        if info is None or info.default is MISSING:
            raise LookupError(f"{class_.__qualname__}.{name} has no default value")
        return info.default

    def attribute_markers(self, class_: type, name: str) -> typing.Tuple[typing.Any, ...]:
        info = self.get_field(class_, name)
        return info.markers if info is not None else ()

    def find_marker(
        self, class_: type, name: str, marker_type: typing.Type[T]
    ) -> typing.Optional[T]:
        for marker in self.attribute_markers(class_, name):
            if isinstance(marker, marker_type):
                return marker
        return None

    def __init__(
        self,
        accessor_probes: typing.Sequence[Probe] = ACCESSOR_PROBES,
        mutator_probes: typing.Sequence[Probe] = MUTATOR_PROBES,
    ):
        self.accessor_probes = accessor_probes
        self.mutator_probes = mutator_probes
        self._fields = {}
        self._accessor_methods = {}
        self._mutator_methods = {}

