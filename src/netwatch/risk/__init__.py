"""Risk classification — ordered heuristic rules evaluated as data."""
