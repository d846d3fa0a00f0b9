"""API routers: projects, files, AI assistant."""
