"""Repositories Package - File-backed target lists and exports."""
from pingwatch.repositories.file_utils import sanitize_filename
from pingwatch.repositories.report_repository import ReportRepository
from pingwatch.repositories.target_list_repository import TargetListRepository, parse_target_line

__all__ = [
    "ReportRepository",
    "TargetListRepository",
    "parse_target_line",
    "sanitize_filename",
]
