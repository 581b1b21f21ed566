"""SaaSQuatch: scaffold Fastify microservice monorepos from a declarative config."""

__version__ = "0.1.0"
