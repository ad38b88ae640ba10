"""YouTube catalog integration."""
