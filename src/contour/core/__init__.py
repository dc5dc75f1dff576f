"""Core IR, registry and configuration for contour."""
