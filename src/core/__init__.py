"""Core module for configuration, logging, tracing, and shared exceptions."""
