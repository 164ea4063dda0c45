"""
Payment Engine

Processes a stream of deposit, withdrawal, dispute, resolve and chargeback
commands against client accounts using exact fixed-point amounts.
"""

__version__ = "1.0.0"
