from .summary_reporter import SummaryReporter, previous_week_range

__all__ = ["SummaryReporter", "previous_week_range"]
