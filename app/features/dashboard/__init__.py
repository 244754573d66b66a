"""
Dashboard feature package: bands the attention feed and the decision-engine
stream into NOW / SOON / AWARE.
"""

from .classifier import classify, filter_urgent, group_items, restrict_to_urgent  # noqa: F401
from .domain.models import Band, ClassifiedDashboard, DashboardItem  # noqa: F401
