import functools
import re
import typing

_SEGMENT_SEPARATORS = re.compile(r"[_\- ]+")


@functools.lru_cache(maxsize=4096)
def camelize(name: str, prefix: str = "") -> str:
    """
    Converts an attribute name into the camelCase spelling of a method name,
    optionally prefixed: ``camelize("var_name_blah", "get") == "getVarNameBlah"``.

    Leading underscores of protected attributes are not part of the synthesized name.
    """
    stem = name.lstrip("_")
    if not stem:
        return prefix
    words = [w for w in _SEGMENT_SEPARATORS.split(f"{prefix}_{stem}" if prefix else stem) if w]
    joined = "".join(w[0].upper() + w[1:] for w in words)
    return joined[0].lower() + joined[1:]


@functools.lru_cache(maxsize=4096)
def snakeize(name: str, prefix: str = "") -> str:
    """
    Returns the snake_case spelling of a method name, e.g.
    ``snakeize("varNameBlah", "get") == "get_var_name_blah"``.
    """
    stem = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name.lstrip("_")).lower()
    if not stem:
        return prefix
    return f"{prefix}_{stem}" if prefix else stem


def english_enumerate(items: typing.Iterable[str], conj: str = ", and ") -> str:
    buf = []

    i = iter(items)
    try:
        x = next(i)
    except StopIteration:
        return ""
    buf.append(x)

    lx: typing.Optional[str] = None

    for x in i:
        if lx is not None:
            buf.append(", ")
            buf.append(lx)
        lx = x
    if lx is not None:
        buf.append(conj)
        buf.append(lx)
    return "".join(buf)
