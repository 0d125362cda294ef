"""Static lookup tables used by the scoring helpers."""
