"""storyboard_fanout package.

Decompose text into a fixed number of scenes, render each scene concurrently
and track every scene's lifecycle independently.
"""

from . import errors, schemas
from .config import StoryboardConfig
from .orchestrator import StoryboardOrchestrator

__all__ = ["errors", "schemas", "StoryboardConfig", "StoryboardOrchestrator"]
__version__ = "0.1.0"
