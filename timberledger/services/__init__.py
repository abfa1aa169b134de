"""Service layer: session tokens and logging setup."""
