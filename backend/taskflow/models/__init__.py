"""SQLAlchemy models."""

from taskflow.models.ai import (
    DelayRiskPattern,
    RiskAlert,
    TaskCompletionHistory,
    TaskEstimation,
    TaskRiskAssessment,
)
from taskflow.models.comment import Comment, CommentReaction
from taskflow.models.dashboard import (
    DashboardWidget,
    UserPreferences,
    WorkloadForecast,
    WorkloadMetric,
)
from taskflow.models.mention import Mention
from taskflow.models.task import (
    RecurringTaskInstance,
    RecurringTaskPattern,
    Task,
    TaskDependency,
)
from taskflow.models.user import Profile
from taskflow.models.workspace import (
    Project,
    Workspace,
    WorkspaceInvitation,
    WorkspaceMember,
)

__all__ = [
    "Comment",
    "CommentReaction",
    "DashboardWidget",
    "DelayRiskPattern",
    "Mention",
    "Profile",
    "Project",
    "RecurringTaskInstance",
    "RecurringTaskPattern",
    "RiskAlert",
    "Task",
    "TaskCompletionHistory",
    "TaskDependency",
    "TaskEstimation",
    "TaskRiskAssessment",
    "UserPreferences",
    "WorkloadForecast",
    "WorkloadMetric",
    "Workspace",
    "WorkspaceInvitation",
    "WorkspaceMember",
]
