"""
Community features: user accounts, follows, reviews and favorites.
"""
