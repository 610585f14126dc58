# Models package (re-export feature modules for stable imports)
from .users.user import User
from .health.analysis import Analysis

__all__ = [
    "User",
    "Analysis",
]
