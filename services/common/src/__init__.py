# =============================================================================
# GIC Common - Package Initialization
# =============================================================================
"""
GIC Common

Validation, configuration and storage types shared by the upload gateway
and the patient mapper.
"""

__version__ = "1.0.0"
