"""Platform adapters and data providers."""
