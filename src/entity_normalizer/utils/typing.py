import types
import typing

NoneType = type(None)


def is_union(annotation: typing.Any) -> bool:
    return typing.get_origin(annotation) in (typing.Union, types.UnionType)


def is_classvar(annotation: typing.Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar"))
    return annotation is typing.ClassVar or typing.get_origin(annotation) is typing.ClassVar


def is_final(annotation: typing.Any) -> bool:
    annotation = strip_annotated(annotation)
    if isinstance(annotation, str):
        return annotation.startswith(("Final", "typing.Final"))
    return annotation is typing.Final or typing.get_origin(annotation) is typing.Final


def strip_annotated(annotation: typing.Any) -> typing.Any:
    while typing.get_origin(annotation) is typing.Annotated:
        annotation = typing.get_args(annotation)[0]
    return annotation


def annotated_metadata(annotation: typing.Any) -> typing.Tuple[typing.Any, ...]:
    if typing.get_origin(annotation) is typing.Annotated:
        return tuple(annotation.__metadata__)
    return ()


def allows_none(annotation: typing.Any) -> bool:
    """
    Tells if a raw annotation admits ``None`` as a value.
    """
    annotation = strip_annotated(annotation)
    if annotation is None or annotation is NoneType or annotation is typing.Any:
        return True
    if isinstance(annotation, str):
        return annotation in ("None", "Any", "typing.Any") or annotation.startswith(
            ("Optional[", "typing.Optional[")
        ) or "| None" in annotation or "None |" in annotation
    if typing.get_origin(annotation) is typing.Final:
        args = typing.get_args(annotation)
        return bool(args) and allows_none(args[0])
    if is_union(annotation):
        return any(allows_none(a) for a in typing.get_args(annotation))
    return False
