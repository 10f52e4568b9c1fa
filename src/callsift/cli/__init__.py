"""CLI commands for callsift."""
# Import all command modules to register them with the main app
from callsift.cli import inspection, pipeline  # noqa: F401
from callsift.cli.base import app

__all__ = ["app", "inspection", "pipeline"]
