import typing
from collections import OrderedDict

import sqlalchemy as sa  # type: ignore
from sqlalchemy import orm  # type: ignore

from ...extractor import AttributeTypeExtractor
from ...interfaces import EntityStore
from ...members import MemberResolver
from ...models import Cardinality, RelationshipDescriptor
from ...normalizer import EntityNormalizer
from ...types import TypeResolver


def get_mapper(class_or_object: typing.Any) -> typing.Optional[orm.Mapper]:
    class_ = class_or_object if isinstance(class_or_object, type) else type(class_or_object)
    sa_mapper = sa.inspect(class_, raiseerr=False)
    return sa_mapper if isinstance(sa_mapper, orm.Mapper) else None


def foreign_key_attribute(prop: orm.RelationshipProperty) -> typing.Optional[str]:
    """
    Returns the name of the attribute that holds the foreign key of a many-to-one
    relationship, or None for relationships whose key lives on the other side.
    """
    if prop.direction is not orm.MANYTOONE:
        return None
    for local_col, _ in prop.local_remote_pairs:
        try:
            return prop.parent.get_property_by_column(local_col).key
        except orm.exc.UnmappedColumnError:
            continue
    return None


def build_relationship_descriptor(prop: orm.RelationshipProperty) -> RelationshipDescriptor:
    if prop.uselist:
        return RelationshipDescriptor(
            name=prop.key,
            cardinality=Cardinality.MANY,
            target=prop.mapper.class_,
            is_owning_side=not prop.viewonly,
        )
    else:
        return RelationshipDescriptor(
            name=prop.key,
            cardinality=Cardinality.ONE,
            target=prop.mapper.class_,
            column=foreign_key_attribute(prop),
        )


class SQLAEntityStore(EntityStore):
    """
    An :py:class:`EntityStore` that looks objects up through a SQLAlchemy session.
    """

    session: orm.Session

    def get_relationship_schema(
        self, class_: type
    ) -> typing.Mapping[str, RelationshipDescriptor]:
        sa_mapper = get_mapper(class_)
        if sa_mapper is None:
            return {}
        schema: "OrderedDict[str, RelationshipDescriptor]" = OrderedDict()
        for prop in sa_mapper.relationships:
            schema[prop.key] = build_relationship_descriptor(prop)
        return schema

    def find_by_identifier(self, class_: type, identifier: typing.Any) -> typing.Optional[typing.Any]:
        if identifier is None:
            return None
        try:
            return self.session.get(class_, identifier)
        except (sa.exc.InvalidRequestError, sa.exc.StatementError, TypeError, ValueError):
            # an identifier of the wrong shape cannot identify anything
            return None

    def get_identifier_fields(self, class_: type) -> typing.Sequence[str]:
        sa_mapper = get_mapper(class_)
        if sa_mapper is None:
            return ()
        return tuple(sa_mapper.get_property_by_column(c).key for c in sa_mapper.primary_key)

    def is_entity(self, class_or_object: typing.Any) -> bool:
        return get_mapper(class_or_object) is not None

    def __init__(self, session: orm.Session):
        self.session = session


def sqla_normalizer(session: orm.Session, **kwargs: typing.Any) -> EntityNormalizer:
    """
    Builds an :py:class:`EntityNormalizer` for the classes mapped in ``session``.
    ``orm.Mapped[X]`` annotations are resolved as ``X``.

    :param sqlalchemy.orm.session.Session session: SQLAlchemy session to use to fetch related objects.
    :param kwargs: passed through to :py:class:`EntityNormalizer`.
    """
    member_resolver = kwargs.pop("member_resolver", None) or MemberResolver()
    if "type_extractor" not in kwargs:
        kwargs["type_extractor"] = AttributeTypeExtractor(
            member_resolver=member_resolver,
            type_resolver=TypeResolver(transparent=(orm.Mapped,)),
        )
    return EntityNormalizer(SQLAEntityStore(session), member_resolver=member_resolver, **kwargs)
