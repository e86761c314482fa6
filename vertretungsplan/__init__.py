"""
vertretungsplan: normalize German school substitution schedules.

Main entry points:
- ReconciliationPipeline / build_schedule  (sources -> Schedule)
- resolve_date / resolve_datetime          (German date strings)
- classify_row                             (column labels -> semantic fields)
- diff_schedules                           (what changed between two builds)
"""

from vertretungsplan.dates import resolve_date, resolve_datetime
from vertretungsplan.diff import ScheduleDiff, diff_schedules
from vertretungsplan.fields import SemanticField, classify, classify_row
from vertretungsplan.model import AdditionalInfo, Day, Schedule, ScheduleModel, Substitution
from vertretungsplan.pipeline import Descriptor, ReconciliationPipeline, build_schedule

__all__ = [
    "AdditionalInfo",
    "Day",
    "Descriptor",
    "ReconciliationPipeline",
    "Schedule",
    "ScheduleDiff",
    "ScheduleModel",
    "SemanticField",
    "Substitution",
    "build_schedule",
    "classify",
    "classify_row",
    "diff_schedules",
    "resolve_date",
    "resolve_datetime",
]
