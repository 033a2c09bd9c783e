"""Language-independent analysis engine: node model, traversal, oracles, fixes."""
