"""Configuration loading, Envoy reply helpers, error mapping, a model store, TLS certificates and logging for an inference payload processor."""

__version__ = "0.1.0"