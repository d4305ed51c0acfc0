"""Report rendering for pageperf sessions."""

from pageperf.report.markdown import MarkdownReporter, ReportOptions, generate_report

__all__ = [
    "MarkdownReporter",
    "ReportOptions",
    "generate_report",
]
