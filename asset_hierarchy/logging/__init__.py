from .defect_log import DefectLogBuffer, records_from_result
from .init import get_logger, log_summary, reset_logging, setup_logging

__all__ = [
    "DefectLogBuffer",
    "get_logger",
    "log_summary",
    "records_from_result",
    "reset_logging",
    "setup_logging",
]
