# arklet/models/__init__.py
"""
Database models owned by the framework.
Application models are registered through the "models" option instead.
"""
