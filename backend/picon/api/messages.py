"""Per-request log record, also used as the JSON error body."""
import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class RequestLog:
    """Immutable record of one request; derive updated copies with `with_()`."""

    path: str
    params: Optional[Mapping[str, Any]] = None
    sent: Optional[str] = None
    error: Optional[str] = None

    def with_(self, **changes) -> "RequestLog":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        request: dict = {"path": self.path}
        if self.params is not None:
            request["params"] = dict(self.params)
        body: dict = {
            "request": request,
            "response": {"sent": self.sent} if self.sent else {},
        }
        if self.error is not None:
            body["error"] = self.error
        return body

    def emit(self, logger: logging.Logger) -> None:
        """One JSON line: error level when the request failed."""
        line = json.dumps(self.to_dict(), default=str)
        if self.error is None:
            logger.info("%s", line)
        else:
            logger.error("%s", line)
