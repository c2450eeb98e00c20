# app/services/__init__.py
"""
Service layer root package.

Each subpackage implements application use-cases on top of:

- SQLAlchemy models (app.models.*)
- Repositories (app.repositories.*)
- Common service infrastructure (app.services.base.*)

Services take a request-scoped session; they commit through
``BaseService.transaction()`` and broadcast after the commit.
"""
