"""HTTP surface of the admin layer."""
