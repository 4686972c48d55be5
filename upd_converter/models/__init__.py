"""Domain models for the UPD Excel -> XML converter."""

from .config_models import ColumnMapping, ConverterConfig, XmlSettings
from .document import Cell, CellPosition, ConversionResult, DocumentInfo, Grid, LineItem, Totals
from .error_record import ErrorRecord
from .processing_result import BatchResult, FileResult, FileStatus

__all__ = [
    # Configuration models
    "ColumnMapping",
    "ConverterConfig",
    "XmlSettings",
    # Document models
    "Cell",
    "CellPosition",
    "ConversionResult",
    "DocumentInfo",
    "Grid",
    "LineItem",
    "Totals",
    # Processing models
    "BatchResult",
    "ErrorRecord",
    "FileResult",
    "FileStatus",
]
