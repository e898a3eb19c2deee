"""HTTP surface for the QuakeScope engine."""
