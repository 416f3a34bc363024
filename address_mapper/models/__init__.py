"""Domain models for the address mapping tool.

This package contains the dataset, configuration and result models shared by
the excel, store and services layers.
"""

from .config_models import MapperConfig, PersistenceConfig, RemoteConfig, TableConfig
from .dataset import TabularDataset
from .excel_file import ExcelFile, FileStatus
from .processing_result import FileStat, ProcessingResult

__all__ = [
    # Configuration models
    "MapperConfig",
    "PersistenceConfig",
    "RemoteConfig",
    "TableConfig",
    # Processing models
    "TabularDataset",
    "ExcelFile",
    "FileStatus",
    "FileStat",
    "ProcessingResult",
]
