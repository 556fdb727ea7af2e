"""
MLM matrix engine.

3x3 referral matrix placement with spillover and multi-level commissions.
"""

__version__ = "1.0.0"
