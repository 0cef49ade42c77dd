"""Menu and arrival-time reservations for a small restaurant."""
