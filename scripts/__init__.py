"""
Scripts package for the AD computer report.

This package contains command-line scripts organized by functionality.

Subpackages:
- ad: Active Directory reporting scripts
"""

__version__ = "0.1.0"
