"""Single-file static analysis of JavaScript / TypeScript sources."""

__version__ = "0.1.0"

from .analyzer import analysis_envelope, analyze  # noqa: E402
from .config import Settings, load_settings  # noqa: E402
from .models import AnalysisResult  # noqa: E402

__all__ = ["__version__", "analyze", "analysis_envelope", "Settings", "load_settings", "AnalysisResult"]
