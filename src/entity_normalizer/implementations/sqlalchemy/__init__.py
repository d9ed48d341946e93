from .store import SQLAEntityStore, sqla_normalizer  # noqa
