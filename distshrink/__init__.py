"""Post-build size optimizer for static web output."""
from distshrink.engine import OptimizeResult, optimize
from distshrink.settings import Settings

__version__ = "0.1.0"

__all__ = ["OptimizeResult", "Settings", "optimize", "__version__"]
