from .service import ConversionService, InflightRegistry
from .models import ConversionRequest, Operation, PreviewError, SourceKind

__all__ = ["ConversionService", "InflightRegistry", "ConversionRequest", "Operation", "PreviewError", "SourceKind"]
