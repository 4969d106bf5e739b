"""
Utility functions and helpers.

This package contains reusable utilities for file operations, console output,
logging, retries, and other common operations.

Modules:
- config: Workspace-aware settings lookup
- logging: Logging configuration
- retry: Exponential backoff for throttled AWS calls
- templates: Jinja2 rendering of bundled templates
"""
