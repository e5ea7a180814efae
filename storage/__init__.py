"""
Storage Package.

This package manages all developer tracker persistence.

Modules:
- database: Engine, session factory and transaction scopes
- models/: ORM models
- repositories/: Data access layer
"""
