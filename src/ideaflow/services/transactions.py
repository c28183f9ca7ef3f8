"""Unit-of-work helper for workflow operations."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ideaflow.errors.exceptions import IdeaFlowError, InternalError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(
    session: AsyncSession,
    *,
    operation: str,
    on_conflict: IdeaFlowError | None = None,
    **context,
) -> AsyncIterator[AsyncSession]:
    """Commit everything done in the block, or nothing.

    A unique-key violation is reported as ``on_conflict`` when given: the
    constraint is the final arbiter when two callers pass the same
    existence check. Any other storage failure is logged with the operation
    context and surfaced as an opaque INTERNAL_ERROR.
    """
    try:
        yield session
        await session.commit()
    except IdeaFlowError:
        await session.rollback()
        raise
    except IntegrityError as exc:
        await session.rollback()
        if on_conflict is not None:
            logger.info("%s lost a uniqueness race", operation, extra=context)
            raise on_conflict from exc
        logger.error("%s failed: integrity error", operation, extra=context, exc_info=True)
        raise InternalError() from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("%s failed: storage error", operation, extra=context, exc_info=True)
        raise InternalError() from exc
