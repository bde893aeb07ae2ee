"""Table scheduling, waitlist and occupancy engine for restaurants."""
