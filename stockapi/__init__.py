"""
Stock API Application Package

This package contains the storage accessor and HTTP API components for the
stocks CRUD service.

Modules:
- config: Environment configuration and settings
- models: Pydantic models for the stock resource
- db_client: SQLAlchemy-based storage accessor for the stocks table
- fastapi_server: REST API server and route table
- utils: Logging setup and small helpers
- cli: Command-line interface (serve, status)
"""

__version__ = "0.1.0"
