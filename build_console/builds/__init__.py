"""Build list management.

This module handles:
- The builds API client and wire models
- The snapshot store and view state
- Filtering, pagination and rendering of the build list
- Build actions and reconciliation polling
"""

from build_console.builds.client import BuildsApiError, BuildsClient
from build_console.builds.models import BuildRecord, StatusResponse

__all__ = ["BuildRecord", "BuildsApiError", "BuildsClient", "StatusResponse"]

# Lazy imports for submodules to avoid circular imports
# Access via build_console.builds.poller, etc.
