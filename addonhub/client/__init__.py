from .api import AddonHubClient, ApiError
from .screens import (
    AddonDetailScreen,
    AddonFormScreen,
    DashboardScreen,
    HomeScreen,
    ProfileScreen,
)
from .state import FetchState

__all__ = [
    "AddonDetailScreen",
    "AddonFormScreen",
    "AddonHubClient",
    "ApiError",
    "DashboardScreen",
    "FetchState",
    "HomeScreen",
    "ProfileScreen",
]
