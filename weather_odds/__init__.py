"""Historical weather odds: per-location, per-day statistics and CSV export."""
