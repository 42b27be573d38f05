"""Dashboard state and polling scheduler."""

from src.dashboard.poller import DashboardPoller, RefreshTicket
from src.dashboard.state import PANELS, DashboardState

__all__ = ["PANELS", "DashboardPoller", "DashboardState", "RefreshTicket"]
