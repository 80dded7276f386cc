"""Environment specific settings (development, production)."""
