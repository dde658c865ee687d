"""Domain services: role resolution, role management and accounts."""
