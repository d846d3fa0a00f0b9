"""
Projects Service Package

Modules:
- models: request/response models
- db_projects: owner-scoped CRUD, slugs
- templates: starter files per language
"""
