"""Domain rules layered on top of the core lattice physics."""
