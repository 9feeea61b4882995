"""
Generic CRUD-over-HTTP core with entity tag based optimistic concurrency
"""

__version__ = "0.1.0"
