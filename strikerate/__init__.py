"""
strikerate package
==================

Wildlife-strike data preparation and annual rate reporting for one airport.

- Source adapters (regulatory / internal exports) are in `strikerate/loader.py`.
- Canonical naming rules (species, guild, runway, month) are in `strikerate/normalize.py`.
- Counting, rates and control limits are in `strikerate/aggregate.py` and `strikerate/rates.py`.
- The batch CLI entry point is in `strikerate/cli.py`.
"""

__version__ = '0.3.0'
