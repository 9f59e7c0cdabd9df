"""Build Console - operator console for patched client builds.

This package provides the client side of the build selector: it keeps a
local snapshot of the server's build collection, derives a filtered and
paginated view from it, dispatches download/activate/repatch actions and
reconciles the snapshot with asynchronous server-side patching by polling.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
