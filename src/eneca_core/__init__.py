"""Eneca core: data model, name resolution and CRUD for the project tree."""
