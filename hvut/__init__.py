"""HVUT Form 2290 tax and filing-cost engine"""

__version__ = "0.3.0"
