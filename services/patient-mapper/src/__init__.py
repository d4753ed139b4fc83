# =============================================================================
# Patient Mapper - Package Initialization
# =============================================================================
"""
Patient Mapper Service

Reads uploaded patient files from S3, maps each GIC id to its MRN and
publishes the mapped batch to SQS for downstream consumers.
"""

__version__ = "1.0.0"
