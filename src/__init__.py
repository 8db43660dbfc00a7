"""
Price Scraper: extração de preços via browser headless.
"""

__version__ = "1.0.0"
