"""HTTP surface over the snapshot coordinator."""
