"""
OAuth Link Application Layer

This package implements the internal HTTP API of the reconciliation service using the
aiohttp framework. The API is consumed by the session layer that talks to the OAuth
providers; it is not exposed to end users.

Key Components:
- cli.py: Entry point and logging configuration
- server.py: Web server configuration, middleware and startup/shutdown
- config.py: Configuration management using Pydantic settings
- handlers/: Request handlers for the internal endpoints
- tasks.py: Background task draining the health gauge
- util/: Developer utilities (key generation, profile normalization)

The application uses two middleware layers:
- Statsd middleware for request metrics
- Sentry middleware for error reporting

It provides the following endpoints:
- Health checks (/internal/alive, /internal/ready)
- Reconciliation API (/internal/api/reconcile, /internal/api/providers)
"""
