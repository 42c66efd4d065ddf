from typing import Callable, TypeVar
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import structlog

from crowdfund.core.circuit_breaker import db_circuit_breaker
from crowdfund.core.errors import CrowdfundError, UnexpectedError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def guarded(db: Session, operation: Callable[[], T], failure_message: str, **log_context) -> T:
    """
    Run a unit of database work behind the circuit breaker.

    Classified errors roll the session back and propagate unchanged; store
    failures roll back and surface as UnexpectedError.
    """
    try:
        return await db_circuit_breaker.call(operation)
    except CrowdfundError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(failure_message, error=str(e), error_type=type(e).__name__, **log_context)
        raise UnexpectedError(failure_message) from e
