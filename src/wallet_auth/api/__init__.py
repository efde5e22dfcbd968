"""HTTP surface of the wallet auth service."""
