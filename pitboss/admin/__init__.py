"""
Operator tooling: session statistics, test mode and the admin console.
"""

from pitboss.admin.commands import AdminCommands
from pitboss.admin.statistics import Statistics
from pitboss.admin.test_mode import TestMode

__all__ = ["AdminCommands", "Statistics", "TestMode"]
