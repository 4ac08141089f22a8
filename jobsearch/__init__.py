"""Schema-validated data store for the job search application."""

__version__ = "0.3.0"
