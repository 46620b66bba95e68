"""Registry services: installation, resolution, tabs and message history."""
