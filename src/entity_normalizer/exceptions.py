import abc
import typing


class EntityNormalizerException(Exception, metaclass=abc.ABCMeta):
    @property
    @abc.abstractmethod
    def message(self) -> str:
        ...  # pragma: nocover

    def __str__(self):
        return self.message


class MemberResolutionError(EntityNormalizerException):
    class_: type
    name: str

    def __init__(self, class_: type, name: str):
        self.class_ = class_
        self.name = name


class NoAccessorAvailableError(MemberResolutionError):
    @property
    def message(self) -> str:
        return f"no getter is available for attribute ({self.name}) of {self.class_.__qualname__}"


class DeepTraversalDisabledError(MemberResolutionError):
    @property
    def message(self) -> str:
        return (
            f"deep normalization disabled for relationship ({self.name}) "
            f"of {self.class_.__qualname__}"
        )


class UninitializedAttributeError(MemberResolutionError, AttributeError):
    @property
    def message(self) -> str:
        return f"attribute ({self.name}) of {self.class_.__qualname__} has no value"


class MissingIdentifierError(MemberResolutionError):
    @property
    def message(self) -> str:
        return (
            f"the object related through ({self.name}) of {self.class_.__qualname__} "
            "has no single identifier"
        )


class TypeResolutionError(EntityNormalizerException):
    pass


class UnsupportedTypeError(TypeResolutionError):
    subject: typing.Any
    detail: typing.Optional[str]

    @property
    def message(self) -> str:
        return f"cannot resolve type for {self.subject!r}{' (' + self.detail + ')' if self.detail is not None else ''}"

    def __init__(self, subject: typing.Any, detail: typing.Optional[str] = None):
        self.subject = subject
        self.detail = detail


class InvalidContextError(TypeResolutionError):
    keyword: str
    detail: typing.Optional[str]

    @property
    def message(self) -> str:
        if self.detail is not None:
            return f'cannot resolve "{self.keyword}": {self.detail}'
        return f'a type context must be provided to resolve "{self.keyword}"'

    def __init__(self, keyword: str, detail: typing.Optional[str] = None):
        self.keyword = keyword
        self.detail = detail


class ConversionError(EntityNormalizerException):
    type_descr: "types.TypeDescriptor"
    value: typing.Any

    @property
    def message(self) -> str:
        cause = f" ({self.__cause__!s})" if self.__cause__ is not None else ""
        return f"conversion of {self.value!r} to {self.type_descr} failed{cause}"

    def __init__(self, type_descr: "types.TypeDescriptor", value: typing.Any):
        self.type_descr = type_descr
        self.value = value


if typing.TYPE_CHECKING:
    from . import types  # noqa: E402
