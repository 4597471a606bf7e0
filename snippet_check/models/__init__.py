"""Records, results and configuration models."""
