# render_scout/__init__.py
"""
RenderScout package initializer.
Defines package version and exposes CLI.
"""
__version__ = "0.1.0"

# Expose CLI entry point
from render_scout.cli import cli as main_cli
