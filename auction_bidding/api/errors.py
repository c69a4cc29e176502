"""
Service exception -> HTTPException translation
"""
import logging

import redis
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from auction_bidding.services.exceptions import (
    BiddingError,
    InvalidRequestError,
    StateConflictError,
    NotFoundError,
    ConcurrencyConflictError,
)

logger = logging.getLogger(__name__)

# Everything a route translates through to_http_exception
SERVICE_ERRORS = (BiddingError, SQLAlchemyError, redis.RedisError)


def to_http_exception(error: Exception) -> HTTPException:
    """
    Map an exception raised by a service to the response a client sees

    Validation and state conflicts -> 400, missing resources -> 404,
    exhausted concurrency retries -> 409, database and Redis failures -> 500.
    """
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=error.to_detail())

    if isinstance(error, (InvalidRequestError, StateConflictError)):
        return HTTPException(status_code=400, detail=error.to_detail())

    if isinstance(error, ConcurrencyConflictError):
        return HTTPException(status_code=409, detail=error.to_detail())

    if isinstance(error, BiddingError):
        return HTTPException(status_code=400, detail=error.to_detail())

    if isinstance(error, SQLAlchemyError):
        logger.error(f"❌ Database error: {error}")
        return HTTPException(status_code=500, detail={"message": "Internal server error: database failure"})

    if isinstance(error, redis.RedisError):
        logger.error(f"❌ Redis error: {error}")
        return HTTPException(status_code=500, detail={"message": "Internal server error: lock or queue unavailable"})

    return HTTPException(status_code=500, detail={"message": f"Internal server error: {error}"})
