"""Domain layer - catalog, preview playback, purchase flow and payment collaborators."""
