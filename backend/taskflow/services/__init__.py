"""Services package."""

from taskflow.services.workspace import WorkspaceService
from taskflow.services.task import TaskService
from taskflow.services.recurring_task import RecurringTaskService
from taskflow.services.mention import MentionService
from taskflow.services.comment import CommentService
from taskflow.services.dashboard import DashboardService
from taskflow.services.risk_analysis import DelayRiskAnalyzer
from taskflow.services.time_estimation import TaskTimeEstimator

__all__ = [
    "WorkspaceService",
    "TaskService",
    "RecurringTaskService",
    "MentionService",
    "CommentService",
    "DashboardService",
    "DelayRiskAnalyzer",
    "TaskTimeEstimator",
]
