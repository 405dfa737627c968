"""Conversion request models and errors."""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping


class Operation(str, Enum):
    CONVERT = "convert"
    RESIZE = "resize"
    RESIZE_WIDTH = "resize_width"


class SourceKind(str, Enum):
    PDF = "pdf"
    VIDEO = "video"
    OFFICE = "office"


# Applied to missing or empty form fields, in this order
DEFAULT_PARAMS: dict[Operation, tuple[tuple[str, str], ...]] = {
    Operation.CONVERT: (),
    Operation.RESIZE: (("width", "100"), ("height", "100"), ("background_color", "white")),
    Operation.RESIZE_WIDTH: (("width", "100"), ("method", "resize")),
}


@dataclass(frozen=True)
class ConversionRequest:
    """One upload plus the parameters that drive its conversion."""

    source: Path
    operation: Operation
    params: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # Read-only view over a private copy; insertion order is preserved
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @classmethod
    def from_form(cls, source: Path, operation: Operation, fields: Mapping[str, str]) -> "ConversionRequest":
        """
        Build the request from submitted form fields, keeping their order.
        `function` is set to the operation name, then defaults fill missing
        or empty values. Key order feeds the fingerprint, so it is kept as-is.
        """
        params = dict(fields)
        params["function"] = operation.value
        for key, default in DEFAULT_PARAMS[operation]:
            if not params.get(key):
                params[key] = default
        return cls(source=source, operation=operation, params=params)


class PreviewError(Exception):
    """Base for errors reported to the client as a structured JSON body."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidFileError(PreviewError):
    status_code = 400

    def __init__(self, message: str = "invalid file"):
        super().__init__(message)


class TransformError(PreviewError):
    status_code = 400


class UploadTooLargeError(PreviewError):
    status_code = 413


class ConversionError(PreviewError):
    status_code = 422


class ConversionTimeout(ConversionError):
    status_code = 504
