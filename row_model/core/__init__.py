"""Core layer - configuration, conventions, identity maps and errors."""
