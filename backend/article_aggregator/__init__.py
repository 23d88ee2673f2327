"""
Article Aggregator: fetch items from several sources and rank them by
keyword relevance.
"""

__version__ = "0.1.0"
