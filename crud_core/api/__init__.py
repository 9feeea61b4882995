"""
REST API of the CRUD core, see ``crud_core.api.api`` for the application factory
"""
