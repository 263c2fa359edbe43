"""Domain ports shared by services and infrastructure adapters."""
