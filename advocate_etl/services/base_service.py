import time
from abc import ABC, abstractmethod
from typing import Any

from advocate_etl.core.exceptions import AppError
from advocate_etl.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BaseService(ABC):
    """Base class for services run as a single validated unit of work.

    ``execute`` validates the arguments, runs the service and logs its duration
    under the caller's ``job_id`` (when one is passed as a keyword).
    """

    def __init__(self):
        self.logger = LOGGER

    async def execute(self, *args, **kwargs) -> Any:
        """Validate, then run.

        Raises:
            AppError: Domain errors propagate unchanged; anything else is wrapped
        """
        service = self.__class__.__name__
        log_extra = {"service": service, "job_id": kwargs.get("job_id")}
        started = time.monotonic()

        try:
            self.validate(*args, **kwargs)
            result = await self.run(*args, **kwargs)

        except AppError as e:
            self.logger.warning(f"{service} rejected: {str(e)}", extra=log_extra)
            raise

        except Exception as e:
            self.logger.error(
                f"Service execution failed: {str(e)}",
                exc_info=True,
                extra=log_extra
            )
            raise AppError(f"Service execution failed: {str(e)}", original_error=e)

        self.logger.debug(
            f"{service} finished",
            extra={**log_extra, "duration_ms": int((time.monotonic() - started) * 1000)}
        )
        return result

    def validate(self, *args, **kwargs):
        """Check arguments before ``run``; raise ``ValidationError`` to reject them."""

    @abstractmethod
    async def run(self, *args, **kwargs) -> Any:
        ...
