"""Translation of document store failures into application errors."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from google.api_core import exceptions as google_exceptions

from flashplan.errors import StoreUnavailableError, UnauthorizedError

logger = logging.getLogger(__name__)


@contextmanager
def store_call(action: str) -> Iterator[None]:
    """Run a block of Firestore calls, surfacing backend failures as AppErrors.

    Permission failures become ``UnauthorizedError``; every other Google API
    failure becomes ``StoreUnavailableError`` carrying the backend's message.
    Nothing is retried.
    """
    try:
        yield
    except (
        google_exceptions.PermissionDenied,
        google_exceptions.Unauthenticated,
    ) as e:
        logger.warning(f"Permission denied while {action}: {e}")
        raise UnauthorizedError(str(e)) from e
    except google_exceptions.GoogleAPIError as e:
        logger.error(f"Store error while {action}: {e}")
        raise StoreUnavailableError(str(e)) from e
