"""Order lifecycle services."""
