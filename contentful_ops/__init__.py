# =============================================================================
# CONTENTFUL-OPS
# Bulk maintenance scripts for Contentful spaces
# =============================================================================
"""
Bulk scan, clean, publish and delete tooling for Contentful environments.

Entry points:
- contentful_ops.cli.main: command-line dispatcher
- contentful_ops.commands: per-command run engines
"""

__version__ = "1.4.0"
