"""Shared helpers: errors, request context, telemetry and tool instrumentation."""
