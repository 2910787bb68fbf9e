"""
API package for the Todo backend.

Modules:
- config: environment-driven settings
- db: MongoDB client handle + Beanie initialisation
- models: Beanie documents for todos and users
- auth_utils: password hashing, JWT session tokens and x-auth dependencies
- todo_store / user_store: entity stores used by the routes
- schemas: Pydantic models for the REST API
- main: FastAPI app factory and routes
"""
