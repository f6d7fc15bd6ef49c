"""
FastAPI Dependencies

Provides dependency injection for:
- Compose / crop batch runners (singleton)
"""

from imagecompose.engines.compositor.adapter import PillowRasterAdapter
from imagecompose.pipeline.batch import BatchRunner, build_compose_runner, build_crop_runner


# =============================================================================
# Global Singletons - the adapter and services hold no per-request state
# =============================================================================

_adapter = PillowRasterAdapter()
_compose_runner = build_compose_runner(_adapter)
_crop_runner = build_crop_runner(_adapter)


def get_compose_runner() -> BatchRunner:
    """Returns singleton compose batch runner."""
    return _compose_runner


def get_crop_runner() -> BatchRunner:
    """Returns singleton crop batch runner."""
    return _crop_runner
