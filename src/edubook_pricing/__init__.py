"""
EduBook Pricing Package

Prices school book lists (textbooks and notebooks) per class and course.
Resolves each book's price through Ledger → Import → Category Default
precedence, then applies discount-then-tax to get the final price.
"""

__version__ = "1.0.0"
