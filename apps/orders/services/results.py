"""
Uniform result envelope for mutations exposed to API callers.

Mutations never raise across the API boundary: a known domain error becomes
``success=False`` with its code, anything else is logged and reported as
``INTERNAL_ERROR`` with a generic message.
"""

import functools
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from config.errors import DomainError, ErrorCode

logger = structlog.get_logger(__name__)

SUCCESS_CODE = 'OK'
INTERNAL_ERROR_MESSAGE = 'Something went wrong, please try again later'


@dataclass
class MutationResult:
    """``{code, success, message, <entity>}`` returned by mutation services."""

    code: str
    success: bool
    message: str = ''
    entities: dict = field(default_factory=dict)

    def __getattr__(self, name: str) -> Any:
        # Entities read like attributes: result.order, result.split
        entities = self.__dict__.get('entities', {})
        if name in entities:
            return entities[name]
        raise AttributeError(name)

    @classmethod
    def ok(cls, message: str = '', **entities) -> 'MutationResult':
        return cls(code=SUCCESS_CODE, success=True, message=message, entities=entities)

    @classmethod
    def failure(cls, error: DomainError, **entities) -> 'MutationResult':
        return cls(code=str(error.code), success=False, message=str(error), entities=entities)

    @classmethod
    def internal_error(cls, **entities) -> 'MutationResult':
        return cls(
            code=str(ErrorCode.INTERNAL_ERROR),
            success=False,
            message=INTERNAL_ERROR_MESSAGE,
            entities=entities,
        )

    def get(self, name: str, default: Optional[Any] = None) -> Any:
        return self.entities.get(name, default)


def returns_result(entity_name: str):
    """
    Wrap a raising service function so it returns a MutationResult.

    The wrapped function's return value becomes the ``entity_name`` entity.
    Put it outside ``@transaction.atomic`` so the transaction is rolled
    back before the error is turned into a result.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                entity = func(*args, **kwargs)
            except DomainError as e:
                logger.info(
                    "mutation_rejected",
                    operation=func.__name__,
                    code=str(e.code),
                    reason=str(e),
                )
                return MutationResult.failure(e)
            except Exception:
                logger.exception("mutation_failed", operation=func.__name__)
                return MutationResult.internal_error()
            return MutationResult.ok(**{entity_name: entity})

        return wrapper
    return decorator
