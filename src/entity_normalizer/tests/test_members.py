import dataclasses
import typing

import pytest

from ..exceptions import NoAccessorAvailableError, UninitializedAttributeError
from ..members import (
    MISSING,
    AccessorMethodHandle,
    FieldHandle,
    MemberKind,
    MemberResolver,
    MutatorMethodHandle,
    inspect_fields,
)
from ..models import DeepNormalize, Groups, markers
from ..utils import camelize, snakeize


@pytest.mark.parametrize(
    ("name", "prefix", "expected"),
    [
        ("var_name_blah", "get", "getVarNameBlah"),
        ("var_name_blah", "", "varNameBlah"),
        ("_protected_name", "set", "setProtectedName"),
        ("enabled", "is", "isEnabled"),
        ("dashed-name here", "", "dashedNameHere"),
        ("alreadyCamel", "get", "getAlreadyCamel"),
    ],
)
def test_camelize(name, prefix, expected):
    assert camelize(name, prefix) == expected


@pytest.mark.parametrize(
    ("name", "prefix", "expected"),
    [
        ("varNameBlah", "get", "get_var_name_blah"),
        ("var_name_blah", "set", "set_var_name_blah"),
        ("enabled", "", "enabled"),
    ],
)
def test_snakeize(name, prefix, expected):
    assert snakeize(name, prefix) == expected


class Widget:
    var_name_blah: str
    count: int = 0
    _hidden: int = 1
    __mangled: int = 2
    LIMIT = 10

    def getVarNameBlah(self) -> str:
        return self.var_name_blah.upper()

    def is_enabled(self) -> bool:
        return True

    def size(self) -> int:
        return 3

    def label(self, suffix: str) -> str:
        return "x" + suffix

    def set_count(self, count: int) -> None:
        self.count = count * 2

    def setNothing(self) -> None:
        pass

    @staticmethod
    def getStatic() -> int:
        return 1

    @classmethod
    def getKlass(cls) -> int:
        return 1

    @property
    def total(self) -> int:
        return self.count + 1

    @property
    def ratio(self) -> float:
        return 0.5

    @ratio.setter
    def ratio(self, value: float) -> None:
        pass

    def __init__(self, var_name_blah: str = "blah"):
        self.var_name_blah = var_name_blah


class TestMemberResolver:
    @pytest.fixture
    def resolver(self) -> MemberResolver:
        return MemberResolver()

    def test_accessor_by_convention(self, resolver):
        handle = resolver.resolve_accessor(Widget, "var_name_blah")
        assert isinstance(handle, AccessorMethodHandle)
        assert handle.kind is MemberKind.ACCESSOR
        assert handle.method_name == "getVarNameBlah"
        assert handle.prefix == "get"
        assert handle.get(Widget("abc")) == "ABC"

    @pytest.mark.parametrize(
        ("name", "method_name", "prefix"),
        [
            ("enabled", "is_enabled", "is"),
            ("size", "size", ""),
        ],
    )
    def test_accessor_probe_order(self, resolver, name, method_name, prefix):
        handle = resolver.get_accessor_method(Widget, name)
        assert handle is not None
        assert handle.method_name == method_name
        assert handle.prefix == prefix

    def test_accessor_requires_no_arguments(self, resolver):
        assert resolver.get_accessor_method(Widget, "label") is None

    def test_static_and_class_methods_are_not_accessors(self, resolver):
        assert resolver.get_accessor_method(Widget, "static") is None
        assert resolver.get_accessor_method(Widget, "klass") is None

    def test_mutator(self, resolver):
        handle = resolver.resolve_mutator(Widget, "count")
        assert isinstance(handle, MutatorMethodHandle)
        assert handle.method_name == "set_count"
        w = Widget()
        handle.set(w, 2)
        assert w.count == 4
        assert handle.first_parameter().annotation is int

    def test_mutator_requires_an_argument(self, resolver):
        assert resolver.get_mutator_method(Widget, "nothing") is None

    def test_field_fallback(self, resolver):
        handle = resolver.resolve_accessor(Widget, "count")
        assert handle == FieldHandle(owner=Widget, name="count", writable=True)
        assert handle.kind is MemberKind.FIELD

    def test_reading_unset_field(self, resolver):
        widget = Widget.__new__(Widget)
        with pytest.raises(UninitializedAttributeError) as exc_info:
            FieldHandle(owner=Widget, name="var_name_blah", writable=True).get(widget)
        assert exc_info.value.name == "var_name_blah"
        assert isinstance(exc_info.value, AttributeError)
        assert resolver.read(widget, "count") == 0

    def test_read_only_property(self, resolver):
        w = Widget()
        reader = resolver.resolve_accessor(w, "total")
        assert isinstance(reader, FieldHandle)
        assert reader.get(w) == 1
        assert resolver.resolve_mutator(w, "total") is None

    def test_read_write_property(self, resolver):
        assert resolver.resolve_mutator(Widget, "ratio") == FieldHandle(
            owner=Widget, name="ratio", writable=True
        )
        assert resolver.field_annotation(Widget, "ratio") is float

    def test_non_public_members_are_invisible(self, resolver):
        assert resolver.resolve_accessor(Widget, "_hidden") is None
        assert resolver.resolve_mutator(Widget, "_hidden") is None
        with pytest.raises(NoAccessorAvailableError) as exc_info:
            resolver.read(Widget(), "_hidden")
        assert exc_info.value.name == "_hidden"
        assert exc_info.value.class_ is Widget

    def test_instance_fields(self, resolver):
        w = Widget()
        w.extra = 5
        assert resolver.resolve_accessor(Widget, "extra") is None
        handle = resolver.resolve_accessor(w, "extra")
        assert handle is not None
        assert handle.get(w) == 5
        assert resolver.resolve_mutator(w, "extra") is not None

    def test_enumerate_fields(self, resolver):
        w = Widget()
        w.extra = 5
        assert resolver.enumerate_fields(Widget) == [
            "var_name_blah",
            "count",
            "_hidden",
            "total",
            "ratio",
        ]
        assert resolver.enumerate_fields(w)[-1] == "extra"

    def test_field_default(self, resolver):
        assert resolver.field_default(Widget, "count") == 0
        with pytest.raises(LookupError):
            resolver.field_default(Widget, "var_name_blah")
        assert resolver.field_annotation(Widget, "nonexistent") is MISSING

    def test_memoized(self, resolver):
        assert resolver.get_accessor_method(Widget, "size") is resolver.get_accessor_method(
            Widget, "size"
        )
        assert resolver.get_fields(Widget) is resolver.get_fields(Widget)


class Base:
    a: int = 1
    b: typing.ClassVar[int] = 2

    def getA(self) -> int:
        return self.a


class Derived(Base):
    c: typing.Final[str] = "c"
    d: typing.Annotated[int, Groups("g"), DeepNormalize()] = 4


@dataclasses.dataclass
class Record:
    x: int
    y: typing.List[int] = dataclasses.field(default_factory=list, metadata=markers(Groups("y")))


@dataclasses.dataclass(frozen=True)
class FrozenRecord:
    x: int


class Slotted:
    __slots__ = ("p", "q")

    def __init__(self):
        self.p = 1
        self.q = 2


class TestInspectFields:
    def test_inheritance(self):
        fields = inspect_fields(Derived)
        assert list(fields) == ["a", "c", "d"]
        assert fields["a"].declaring_class is Base
        assert not fields["c"].writable
        assert fields["d"].markers == (Groups("g"), DeepNormalize())

    def test_inherited_accessor(self):
        handle = MemberResolver().get_accessor_method(Derived, "a")
        assert handle is not None
        assert handle.declaring_class is Base
        assert handle.owner is Derived

    def test_dataclass(self):
        fields = inspect_fields(Record)
        assert fields["y"].markers == (Groups("y"),)
        assert fields["y"].default == []
        assert fields["x"].default is MISSING
        assert fields["x"].writable

    def test_frozen_dataclass(self):
        resolver = MemberResolver()
        r = FrozenRecord(1)
        assert resolver.resolve_accessor(r, "x") is not None
        assert resolver.resolve_mutator(r, "x") is None

    def test_slots(self):
        assert list(inspect_fields(Slotted)) == ["p", "q"]
        resolver = MemberResolver()
        s = Slotted()
        handle = resolver.resolve_mutator(s, "q")
        assert handle is not None
        handle.set(s, 3)
        assert s.q == 3
