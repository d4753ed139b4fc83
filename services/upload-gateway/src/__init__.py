# =============================================================================
# Upload Gateway - Package Initialization
# =============================================================================
"""
Upload Gateway Service

Validates upload requests against the patient-file naming scheme and hands
out one-hour presigned URLs for the single permitted bucket.
"""

__version__ = "1.0.0"
