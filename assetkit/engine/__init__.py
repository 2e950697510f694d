"""
Resolution, caching and async delivery of assets.
"""
