"""CLI command groups for segtrend.

- config: backend profiles and engine settings
- session: merchant/city scope
- trend: ranking, segment grids, comparisons and live metrics
"""
