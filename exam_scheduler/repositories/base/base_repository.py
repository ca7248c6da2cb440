"""
Shared persistence helpers for the scheduling repositories.

Repositories only add, flush and query. The calling service opens the
transaction and commits once per operation, so a refused approval never
leaves half-written rows behind.
"""

import logging
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from exam_scheduler.core.exceptions import EntityAlreadyExistsError, EntityNotFoundError, RepositoryError
from exam_scheduler.models.base import BaseModel

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """Lookups and inserts for a single mapped class."""

    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    @property
    def entity_name(self) -> str:
        return self.model.__name__

    # ==================== Writes ====================

    def create(self, entity: ModelType) -> ModelType:
        """
        Stage ``entity`` and flush so its id and defaults are populated.

        Raises:
            EntityAlreadyExistsError: a unique constraint rejected the row
            RepositoryError: any other database failure
        """
        self.db.add(entity)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise EntityAlreadyExistsError(f"{self.entity_name} already exists") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Insert into {self.model.__tablename__} failed: {e}", exc_info=True)
            raise RepositoryError(f"Could not store {self.entity_name}: {e}") from e
        logger.debug(f"Staged {self.entity_name} {entity.id}")
        return entity

    def delete(self, entity: ModelType) -> None:
        self.db.delete(entity)
        self.db.flush()
        logger.debug(f"Removed {self.entity_name} {entity.id}")

    # ==================== Reads ====================

    def find_by_id(self, entity_id: Any) -> Optional[ModelType]:
        return self.db.get(self.model, entity_id)

    def get_by_id(self, entity_id: Any) -> ModelType:
        entity = self.find_by_id(entity_id)
        if entity is None:
            raise EntityNotFoundError(f"{self.entity_name} {entity_id} does not exist")
        return entity
