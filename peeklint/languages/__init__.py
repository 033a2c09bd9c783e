"""Language frontends that lower source files into the engine's node model."""
