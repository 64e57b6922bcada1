"""Discrepancy analysis and report renderers."""

from .discrepancies import DiscrepancyAnalyzer
from .excel_generator import ExcelReportGenerator
from .formatter import ReportFormatter

__all__ = ["DiscrepancyAnalyzer", "ExcelReportGenerator", "ReportFormatter"]
