"""HP printer driver repackager for macOS.

Core design goals:
- One linear pipeline, fail-fast
- Transient artifacts (mounts, downloads, scratch trees) released on every exit path
- Platform calls behind a single narrow interface
- Centralized logging
"""

__all__ = []
