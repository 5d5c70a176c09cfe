"""
vgl - a git front end that reconciles the working tree with explicit tracking decisions.

Every repository carries a small ``.vgl`` context file recording the active
local and remote locations, a jump context, and which paths the user has
decided to track or leave untracked.
"""

__version__ = "0.1.0"
__description__ = "Version control front end with explicit tracking decisions"

__all__ = ["__version__"]
