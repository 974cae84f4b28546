"""Work Schedule Manager - crew scheduling with QuickBooks Time sync"""

__version__ = "1.0.0"
