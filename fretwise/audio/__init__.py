"""Audio analysis: analyzer tiers, tempo estimation and frame sources."""
