"""HTTP blueprints: main, auth and organization."""
