"""Utils package - Utility modules."""
from .progress import ProgressTracker
from .validator import OutputValidator

__all__ = ["ProgressTracker", "OutputValidator"]
