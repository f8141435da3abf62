from typing import Iterable, List, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shared.app_logging.logger import get_logger
from shared.database.models.entities import Author, Category, NewsSource

logger = get_logger("collector.resolver")

NamedModel = TypeVar("NamedModel", NewsSource, Category, Author)


class EntityResolutionError(Exception):
    """A name could be neither inserted nor read back."""


class EntityResolver:
    """Get-or-create for sources, categories and authors by exact name.

    The unique constraint on ``name`` is the only arbiter between concurrent
    ingestion runs: the insert runs inside a SAVEPOINT, and a conflicting
    insert is answered by re-reading the row the other writer committed.
    """

    def __init__(self, session: Session):
        self.session = session

    def resolve_source(self, name: str) -> NewsSource:
        return self._get_or_create(NewsSource, name)

    def resolve_category(self, name: str) -> Category:
        return self._get_or_create(Category, name)

    def resolve_categories(self, names: Iterable[str]) -> List[Category]:
        return [self.resolve_category(name) for name in _unique(names)]

    def resolve_authors(self, names: Iterable[str]) -> List[Author]:
        return [self._get_or_create(Author, name) for name in _unique(names)]

    def _find(self, model: Type[NamedModel], name: str):
        return self.session.execute(select(model).where(model.name == name)).scalar_one_or_none()

    def _get_or_create(self, model: Type[NamedModel], name: str) -> NamedModel:
        existing = self._find(model, name)
        if existing is not None:
            return existing

        entity = model(name=name)
        try:
            with self.session.begin_nested():
                self.session.add(entity)
        except IntegrityError:
            logger.info(f"Concurrent insert of {model.__tablename__} {name!r}; re-reading")
            existing = self._find(model, name)
            if existing is None:
                raise EntityResolutionError(f"could not resolve {model.__tablename__} {name!r}")
            return existing

        logger.debug(f"Created {model.__tablename__} {name!r} (id={entity.id})")
        return entity


def _unique(names: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for name in names:
        if name and name not in seen:
            seen.append(name)
    return seen
