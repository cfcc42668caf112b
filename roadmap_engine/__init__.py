"""
Roadmap Engine
Content curation and learning analytics for personalised learning roadmaps:
topic classification, resource quality scoring, AI roadmap repair, and
progress / streak / achievement analytics.
"""

__version__ = "0.1.0"
