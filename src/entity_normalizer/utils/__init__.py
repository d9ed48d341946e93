from .naming import camelize, english_enumerate, snakeize  # noqa
from .typing import (  # noqa
    NoneType,
    allows_none,
    annotated_metadata,
    is_classvar,
    is_final,
    is_union,
    strip_annotated,
)
