"""
Application Layer

FastAPI application factory, dependency wiring and HTTP routes.
"""
