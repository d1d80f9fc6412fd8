"""Resource manager backends."""
