from .aggregator import ChangeAggregator, percentage_change, summarize_day
from .change_log import ChangeLog

__all__ = ["ChangeAggregator", "ChangeLog", "percentage_change", "summarize_day"]
