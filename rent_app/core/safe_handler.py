import logging
from functools import wraps

from fastapi import HTTPException, Request
from sqlalchemy.orm.exc import StaleDataError

from policy.errors import RentEngineError

from .friendly_msg import CONFLICT_MESSAGE, get_friendly_message

logger = logging.getLogger(__name__)


def _request_from(args, kwargs) -> Request | None:
    for arg in list(args) + list(kwargs.values()):
        if isinstance(arg, Request):
            return arg
    return None


def safe_handler(func):
    @wraps(func)
    async def wrapper(*args, **kwargs):
        request = _request_from(args, kwargs)

        try:
            return await func(*args, **kwargs)
        except HTTPException as e:
            if request:
                client_ip = request.client.host if request.client else "unknown"
                path = request.url.path
                trace_id = request.headers.get("X-Request-ID", "none")
                logger.warning(
                    f"[HTTPException] TraceID={trace_id} | {e.status_code} - {path} "
                    f"from {client_ip}: {e.detail}"
                )
            raise
        except RentEngineError as e:
            logger.warning(f"[RentEngineError] in {func.__name__}: {e}")
            raise HTTPException(status_code=400, detail=e.to_detail())
        except StaleDataError as e:
            logger.warning(f"[StaleDataError] in {func.__name__}: {e}")
            raise HTTPException(status_code=409, detail=CONFLICT_MESSAGE)
        except Exception as e:
            if request:
                client_ip = request.client.host if request.client else "unknown"
                path = request.url.path
                trace_id = request.headers.get("X-Request-ID", "none")
                logger.error(
                    f"[Unhandled Error] TraceID={trace_id} | in {func.__name__} | Path: {path} | "
                    f"Client: {client_ip} | Error: {e}",
                    exc_info=True,
                )
            else:
                logger.error(
                    f"[Unhandled Error] in {func.__name__}: {e}", exc_info=True
                )
            raise HTTPException(status_code=500, detail=get_friendly_message(e))

    return wrapper
