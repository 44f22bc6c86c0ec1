"""InfluenceSnap - influencer snapshot ingestion and engagement analytics."""

__version__ = "0.1.0"
