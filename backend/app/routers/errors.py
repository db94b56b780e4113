"""Translate service exceptions into HTTP errors"""
import logging
from contextlib import contextmanager

from fastapi import HTTPException, status

from app.services.errors import InvalidTransitionError, ItemNotFoundError, ItemValidationError

logger = logging.getLogger(__name__)


@contextmanager
def service_errors():
    """404 for missing records, 400 for rejected input or transitions"""
    try:
        yield
    except ItemNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except (ItemValidationError, InvalidTransitionError) as e:
        logger.warning(f"Request rejected: {e.message}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
