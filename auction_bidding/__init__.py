"""
Auction bidding and award service
"""
__version__ = "1.0.0"
