"""image-report - stream image security reports to the console"""

__version__ = "0.1.0"
__all__ = ["__version__"]
