"""Translation of QueryResult errors into HTTP errors."""

from typing import Any

from fastapi import HTTPException, status

from assetflow.errors import AssetflowError
from assetflow.storage.client import QueryResult

ERROR_STATUS = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NOT_AUTHORIZED": status.HTTP_403_FORBIDDEN,
    "CONFLICT": status.HTTP_409_CONFLICT,
    "CONFIGURATION_ERROR": 422,
    "DATABASE_ERROR": status.HTTP_502_BAD_GATEWAY,
}


def unwrap_or_raise(result: QueryResult, not_found: str = None) -> Any:
    """Return result data or raise the matching HTTPException.

    Args:
        result: Result returned by a service or the workflow engine
        not_found: Detail for a 404 when the call succeeded with no data
    """
    if not result.ok:
        status_code = ERROR_STATUS.get(result.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        raise HTTPException(status_code=status_code, detail=result.error)
    if not_found is not None and result.data is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
    return result.data


def http_exception(exc: AssetflowError) -> HTTPException:
    """Build the HTTPException matching an assetflow error."""
    status_code = ERROR_STATUS.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=status_code, detail=exc.message)
