from .defaults import DefaultAttributeFilterImpl, DefaultValueConverterImpl  # noqa
from .exceptions import (  # noqa
    ConversionError,
    DeepTraversalDisabledError,
    EntityNormalizerException,
    InvalidContextError,
    MemberResolutionError,
    MissingIdentifierError,
    NoAccessorAvailableError,
    TypeResolutionError,
    UninitializedAttributeError,
    UnsupportedTypeError,
)
from .extractor import AttributeTypeExtractor  # noqa
from .interfaces import AttributeFilter, EntityStore, ValueConverter  # noqa
from .members import MemberResolver  # noqa
from .models import (  # noqa
    Cardinality,
    DeepNormalize,
    Diagnostic,
    DiagnosticKind,
    Diagnostics,
    Groups,
    NormalizationContext,
    NormalizerOptions,
    RelationshipDescriptor,
    markers,
)
from .normalizer import EntityNormalizer  # noqa
from .types import Intersection, TypeContext, TypeDescriptor, TypeResolver  # noqa
