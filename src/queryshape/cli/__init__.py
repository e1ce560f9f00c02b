"""queryshape command-line interface."""
