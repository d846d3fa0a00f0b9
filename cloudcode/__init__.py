"""
Cloud Code Editor backend.

- FastAPI service: auth, projects, files, AI assistant (cloudcode.app_factory)
- Editor session library: tree builder, tabs, panels (cloudcode.session)
"""

__version__ = "1.0.0"
