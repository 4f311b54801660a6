"""Supporting utilities."""
