"""Stage graph, generation and instantiation."""
