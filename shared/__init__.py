"""
Shared utilities for the Tasks service.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI service shell
- test_helpers: Fakes and factories for tests

Do not import from service packages into shared/.
"""
