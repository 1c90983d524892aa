"""Core engine components for the PRU lattice simulation."""
