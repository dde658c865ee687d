"""
Repository layer for data access.

EntityStore owns the session and transaction boundary; Repository and its
user/role specializations stage reads and writes through it; UnitOfWork ties
them to one store so they commit or roll back together.
"""
