"""stackctl CLI package."""
