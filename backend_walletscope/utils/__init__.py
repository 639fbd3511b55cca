"""Amount formatting, address validation and network helpers."""
